"""Image decoding, candidate ingestion, target grids, and raster output."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from photo_mosaic.assembler import percent_done, validate_target_grid
from photo_mosaic.color_utils import downsample_luma, rgb_to_luma
from photo_mosaic.errors import DecodeError, InvalidArgumentError
from photo_mosaic.fingerprint import FINGERPRINT_SIZE, fingerprint
from photo_mosaic.pool import CandidateImage, CandidatePool

logger = logging.getLogger(__name__)

ImageSource = str | Path | bytes


def _source_name(source: ImageSource, index: int) -> str:
    if isinstance(source, bytes):
        return f"image #{index + 1}"
    return Path(source).name


def decode_image(source: ImageSource, name: str | None = None) -> Image.Image:
    """Decode a file path or raw bytes into a fully loaded RGB image.

    Raises:
        DecodeError: the data is missing, truncated or not an image.
    """
    label = name or (f"<{len(source)} bytes>" if isinstance(source, bytes) else str(source))
    fp = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        with Image.open(fp) as img:
            return img.convert("RGB")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        # Pillow names in-memory buffers by their repr
        reason = str(exc).replace(repr(fp), label)
        raise DecodeError(label, reason) from exc


def ingest_image(
    source: ImageSource,
    name: str | None = None,
    size: int = FINGERPRINT_SIZE,
) -> CandidateImage:
    """Decode and fingerprint one image."""
    img = decode_image(source, name)
    brightness = fingerprint(img, size)
    logger.debug("Fingerprinted %s: brightness=%.2f", name or source, brightness)
    return CandidateImage(source=img, brightness=brightness, name=name or "")


def load_candidates(
    sources: Sequence[ImageSource],
    size: int = FINGERPRINT_SIZE,
    workers: int = 4,
    on_progress: Callable[[int], None] | None = None,
    names: Sequence[str] | None = None,
) -> tuple[CandidatePool, list[DecodeError]]:
    """Fingerprint *sources* in parallel and build a pool from the readable ones.

    Undecodable images are logged, returned in the failure list and left
    out of the pool; they never abort the batch. The pool keeps input
    order regardless of completion order.

    Args:
        sources:     Paths or raw bytes.
        size:        Fingerprint resolution.
        workers:     Thread count.
        on_progress: Receives 0-100 after each image finishes.
        names:       Display names, parallel to *sources*.

    Returns:
        ``(pool, failures)``.
    """
    if names is None:
        names = [_source_name(s, i) for i, s in enumerate(sources)]
    total = len(sources)
    results: list[CandidateImage | None] = [None] * total
    failures: list[DecodeError] = []

    with ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
        futs = {
            ex.submit(ingest_image, src, names[i], size): i
            for i, src in enumerate(sources)
        }
        for done, fut in enumerate(as_completed(futs), 1):
            idx = futs[fut]
            try:
                results[idx] = fut.result()
            except DecodeError as exc:
                logger.warning("Skipping %s", exc)
                failures.append(exc)
            if on_progress is not None:
                try:
                    on_progress(percent_done(done, total))
                except Exception:
                    logger.warning("Progress observer failed", exc_info=True)

    pool = CandidatePool(c for c in results if c is not None)
    logger.info(
        "Candidate pool ready: %d of %d images (%d skipped)",
        len(pool), total, len(failures),
    )
    return pool, failures


def collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    if not folder.exists():
        return []
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


# -- Target grids --------------------------------------------------------

def load_target_grid(path: str | Path) -> np.ndarray:
    """Read a JSON array of rows (brightness values) and validate it."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        msg = f"{path} is not valid JSON: {exc}"
        raise InvalidArgumentError(msg) from exc
    if not isinstance(data, list):
        msg = f"{path} must hold a JSON array of rows"
        raise InvalidArgumentError(msg)
    grid = validate_target_grid(data)
    logger.info("Loaded %dx%d target grid from %s", grid.shape[1], grid.shape[0], path)
    return grid


def save_target_grid(grid: np.ndarray, path: str | Path, decimals: int = 2) -> None:
    grid = validate_target_grid(grid)
    rows = np.round(grid, decimals).tolist()
    Path(path).write_text(json.dumps(rows), encoding="utf-8")


def target_grid_from_image(
    source: ImageSource,
    width: int = 80,
    height: int = 60,
) -> np.ndarray:
    """Luminance grid of an image, area-averaged to ``height x width``."""
    if width < 1 or height < 1:
        msg = f"grid dimensions must be positive, got {width}x{height}"
        raise InvalidArgumentError(msg)
    img = decode_image(source)
    luma = rgb_to_luma(np.asarray(img, dtype=np.uint8))
    return downsample_luma(luma, width, height)


# -- Raster output -------------------------------------------------------

def check_output_path(path: str | Path) -> Path:
    """Fail early when Pillow has no writer for the file suffix."""
    path = Path(path)
    fmt = Image.registered_extensions().get(path.suffix.lower())
    if fmt is None or fmt not in Image.SAVE:
        msg = f"cannot write images with suffix {path.suffix or '<none>'!r}: {path}"
        raise InvalidArgumentError(msg)
    return path


def save_raster(raster: np.ndarray, path: str | Path) -> None:
    """Encode the finished mosaic; the format follows the file suffix."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(raster.astype(np.uint8)).save(path)


def raster_to_png(raster: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(raster.astype(np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def make_comparison_grid(
    target_grid: np.ndarray,
    raster: np.ndarray,
    output_path: str | Path,
) -> None:
    """Create a 2-panel comparison: Target | Mosaic.

    The target grid is drawn as grey blocks at the mosaic's resolution.
    """
    ph, pw = raster.shape[:2]
    label_height = 36

    target_img = Image.fromarray(
        np.clip(target_grid, 0, 255).astype(np.uint8),
    ).convert("RGB").resize((pw, ph), Image.NEAREST)
    mosaic_img = Image.fromarray(raster.astype(np.uint8))

    gh, gw = target_grid.shape
    panels = [target_img, mosaic_img]
    labels = [f"Target {gw}x{gh}", "Mosaic"]

    gap = 8
    total_w = len(panels) * pw + (len(panels) - 1) * gap
    total_h = ph + label_height

    canvas = Image.new("RGB", (total_w, total_h), (30, 30, 30))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, label) in enumerate(zip(panels, labels, strict=False)):
        x = i * (pw + gap)
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (pw - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)

    canvas.save(output_path)
