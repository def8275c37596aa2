"""
Photo Mosaic - Gallery Edition

Run with:
    streamlit run streamlit_app.py
"""

from __future__ import annotations

import json
import time

import streamlit as st
from PIL import Image, ImageDraw

from photo_mosaic.assembler import PlacementLog, assemble, resolve_target_grid
from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import MosaicError
from photo_mosaic.image_io import load_candidates, raster_to_png
from photo_mosaic.selector import SelectionTier

# -- Page config -------------------------------------------------------
st.set_page_config(
    page_title="Photo Mosaic",
    page_icon=None,
    layout="wide",
    initial_sidebar_state="collapsed",
)

_DEFAULTS = MosaicConfig()

# -- CSS ---------------------------------------------------------------
st.markdown("""
<style>
    @import url('https://fonts.googleapis.com/css2?family=Cormorant+Garamond:ital,wght@0,300;0,400;1,300&family=Inter:wght@200;300;400&display=swap');

    .stApp {
        background-color: #faf9f6;
        color: #2a2a2a;
        font-family: 'Inter', 'Helvetica Neue', sans-serif;
    }
    .block-container {
        max-width: 1000px;
        padding-top: 3.5rem;
        padding-bottom: 4rem;
    }
    .gallery-title {
        font-family: 'Cormorant Garamond', 'Georgia', serif;
        font-size: 2.8rem;
        font-weight: 300;
        letter-spacing: 0.06em;
        text-align: center;
        color: #1a1a1a;
        border-bottom: 1px solid #1a1a1a;
        padding-bottom: 0.6rem;
        margin-bottom: 0.5rem;
    }
    .gallery-subtitle {
        font-size: 0.75rem;
        font-weight: 300;
        letter-spacing: 0.04em;
        line-height: 1.8;
        margin-bottom: 3rem;
    }
    .processing-text {
        font-family: 'Cormorant Garamond', serif;
        font-size: 1rem;
        font-style: italic;
        color: #a0a09a;
        padding: 1rem 0;
    }
    .catalogue-detail {
        font-size: 0.75rem;
        letter-spacing: 0.08em;
        text-transform: uppercase;
        text-align: center;
        margin-bottom: 2rem;
    }
    .stButton > button, .stDownloadButton > button {
        border-radius: 0px !important;
        border: 1px solid #2a2a2a !important;
        letter-spacing: 0.10em;
        text-transform: uppercase;
        font-size: 0.6rem;
    }
    .stProgress > div > div > div > div { background-color: #2a2a2a; }

    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
    header {visibility: hidden;}
</style>
""", unsafe_allow_html=True)


# -- Helpers -----------------------------------------------------------

def _add_passepartout(img: Image.Image, border: int = 20) -> Image.Image:
    w, h = img.size
    bg = (250, 249, 246)
    canvas = Image.new("RGB", (w + border * 2, h + border * 2), bg)
    canvas.paste(img, (border, border))
    draw = ImageDraw.Draw(canvas)
    draw.rectangle(
        [border - 1, border - 1, border + w, border + h],
        outline=(224, 222, 216), width=1,
    )
    return canvas


def _reset() -> None:
    for key in ("pool", "pool_key", "failures", "raster", "summary"):
        st.session_state.pop(key, None)
    st.session_state.uploader_key = st.session_state.get("uploader_key", 0) + 1


# -- Title -------------------------------------------------------------
st.markdown('<div class="gallery-title">Mosaic Creator</div>', unsafe_allow_html=True)
st.markdown(
    '<div class="gallery-subtitle">'
    "Upload your own pictures and this app rebuilds a brightness pattern out "
    "of them. Every picture is reduced to a single brightness value; each "
    "cell of the pattern then receives a picture whose brightness lies within "
    "the tolerance, preferring pictures that have not been used yet and "
    "capping how often any one picture repeats. Supply a target grid as JSON, "
    "or leave it out for a random pattern."
    "</div>",
    unsafe_allow_html=True,
)

# -- Controls ----------------------------------------------------------
ctrl1, ctrl2 = st.columns(2)
with ctrl1:
    block_size = st.slider("Block size (px)", 2, 32, _DEFAULTS.block_size)
with ctrl2:
    tolerance = st.slider("Tolerance", 0.0, 64.0, float(_DEFAULTS.tolerance), step=1.0)

cfg = MosaicConfig(block_size=block_size, tolerance=tolerance)

# -- Upload ------------------------------------------------------------
uploaded = st.file_uploader(
    "Upload your images",
    type=["jpg", "jpeg", "png", "webp", "bmp", "gif", "jfif"],
    accept_multiple_files=True,
    key=f"uploader_{st.session_state.get('uploader_key', 0)}",
)
grid_file = st.file_uploader(
    "Target grid (optional JSON)",
    type=["json"],
    key=f"grid_uploader_{st.session_state.get('uploader_key', 0)}",
)

if uploaded:
    pool_key = tuple((f.name, f.size) for f in uploaded)
    if st.session_state.get("pool_key") != pool_key:
        bar = st.progress(0, text="Uploading: 0%")
        pool, failures = load_candidates(
            [f.getvalue() for f in uploaded],
            size=cfg.fingerprint_size,
            workers=cfg.workers,
            on_progress=lambda pct: bar.progress(pct, text=f"Uploading: {pct}%"),
            names=[f.name for f in uploaded],
        )
        bar.empty()
        st.session_state.pool = pool
        st.session_state.pool_key = pool_key
        st.session_state.failures = failures
        st.session_state.pop("raster", None)
else:
    # every file removed from the uploader
    for key in ("pool", "pool_key", "failures", "raster", "summary"):
        st.session_state.pop(key, None)

pool = st.session_state.get("pool")
for failure in st.session_state.get("failures", []):
    st.warning(f"Skipped {failure.name}: {failure.reason}")
if pool is not None and len(pool):
    st.markdown(f"✓ {len(pool)} images ready")

target = None
if grid_file is not None:
    try:
        target = json.loads(grid_file.getvalue())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        st.error(f"Target grid is not valid JSON: {exc}")
        st.stop()

if st.button(
    "GENERATE MOSAIC",
    type="primary",
    use_container_width=True,
    disabled=pool is None or len(pool) == 0,
):
    rng = cfg.make_rng()
    try:
        grid = resolve_target_grid(target, cfg, rng)
    except MosaicError as exc:
        st.error(str(exc))
        st.stop()

    run_pool = pool.copy()
    h, w = grid.shape
    placements = PlacementLog(run_pool, h, w).bind_targets(grid)
    bar = st.progress(0, text="Generating: 0%")
    t0 = time.perf_counter()
    try:
        raster = assemble(
            grid, run_pool,
            block_size=cfg.block_size,
            tolerance=cfg.tolerance,
            rng=rng,
            on_progress=lambda pct: bar.progress(pct, text=f"Generating: {pct}%"),
            on_cell=placements,
        )
    except MosaicError as exc:
        bar.empty()
        st.error(f"Generation failed: {exc}")
        st.stop()
    bar.empty()

    st.session_state.raster = raster
    st.session_state.summary = {
        "grid": f"{w} × {h}",
        "max_usage": run_pool.max_usage,
        "fallback": placements.tiers[SelectionTier.CLOSEST],
        "error": placements.mean_error,
        "time": time.perf_counter() - t0,
    }

raster = st.session_state.get("raster")
if raster is not None:
    summary = st.session_state.summary
    st.markdown("---")
    st.image(_add_passepartout(Image.fromarray(raster), border=28), use_container_width=True)
    st.markdown(
        f'<div class="catalogue-detail">{summary["grid"]} cells, '
        f"{block_size}px blocks</div>",
        unsafe_allow_html=True,
    )

    _, dl_col, reset_col, _ = st.columns([1, 1, 1, 1])
    with dl_col:
        st.download_button(
            "DOWNLOAD",
            data=raster_to_png(raster),
            file_name="mosaic.png",
            mime="image/png",
            use_container_width=True,
        )
    with reset_col:
        if st.button("RESET", use_container_width=True):
            _reset()
            st.rerun()

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Time", f"{summary['time']:.1f} s")
    m2.metric("Max usage", f"{summary['max_usage']}")
    m3.metric("Fallbacks", f"{summary['fallback']:,}")
    m4.metric("Avg Error", f"{summary['error']:.1f}")
elif pool is None:
    st.markdown(
        '<p class="processing-text">Upload your images to begin.</p>',
        unsafe_allow_html=True,
    )

