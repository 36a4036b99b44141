"""
StrideLab – Footprint Arch Analysis
Streamlit Web App

Upload a footprint → calibrate forefoot / arch / heel bands → CSI + SI
classification, lidar-style point-cloud overlay and AI shoe advice.
"""

import io
import logging
import time

import cv2
import numpy as np
import pandas as pd
import streamlit as st
from PIL import Image

import config
from advisor import fetch_advice, shoe_display_name
from calibration import BAND_KEYS, apply_slider_values, draw_bands, slider_values
from errors import DecodeError, InputError
from foot_index import foot_type_table
from footprint_mesh import compose_view, mesh_summary, render_mesh, scan_footprint
from raster import OpenCVRaster, fit_dimensions, preview_buffer
from session import STEP_CALIBRATE, STEP_REPORT, STEP_UPLOAD, AppState

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("stridelab")

# ─────────────────────────────────────────────────────────────────────────────
# PAGE CONFIG
# ─────────────────────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="StrideLab",
    page_icon="👣",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ─────────────────────────────────────────────────────────────────────────────
# CUSTOM CSS - dark lab aesthetic
# ─────────────────────────────────────────────────────────────────────────────
st.markdown("""
<style>
:root {
    --bg: #020617;
    --surface: #0f172a;
    --border: #1e293b;
    --accent: #22d3ee;
    --amber: #fbbf24;
    --purple: #c084fc;
    --text: #f1f5f9;
    --muted: #64748b;
    --radius: 18px;
}

html, body, [data-testid="stAppViewContainer"] {
    background: var(--bg) !important;
    color: var(--text) !important;
}
[data-testid="stHeader"] { background: transparent !important; }

.hero { padding: 0.5rem 0 1rem; display: flex; align-items: center; gap: .75rem; }
.hero h1 { font-size: 1.8rem; margin: 0; font-weight: 800; }
.hero .tag {
    font-family: monospace; font-size: .7rem; color: var(--accent);
    border: 1px solid var(--accent); border-radius: 999px; padding: 2px 10px;
}

.card {
    background: var(--surface);
    border: 1px solid var(--border);
    border-radius: var(--radius);
    padding: 1.5rem;
    margin-bottom: 1rem;
}
.card .kicker {
    font-size: .65rem; font-weight: 900; text-transform: uppercase;
    letter-spacing: .12em; color: var(--muted);
}
.card h3 { margin: .3rem 0 .5rem; font-size: 2rem; font-weight: 900; }
.card.reco { border-left: 8px solid var(--accent); }

.metric-row { display: grid; grid-template-columns: 1fr 1fr; gap: 1rem; margin-bottom: 1rem; }
.metric-box {
    background: var(--surface); border: 1px solid var(--border);
    border-radius: var(--radius); padding: 1.25rem;
}
.metric-box .m-label { font-size: .65rem; font-weight: 900; color: var(--muted); }
.metric-box .m-value { font-size: 2rem; font-weight: 900; font-family: monospace; }

.tier-row { display: flex; gap: .5rem; font-family: monospace; font-size: .75rem; }
.tier { padding: 2px 10px; border-radius: 999px; border: 1px solid var(--border); }
.tier.high   { color: #ef4444; }
.tier.medium { color: #eab308; }
.tier.low    { color: #22d3ee; }

.info-box {
    background: rgba(34,211,238,.08);
    border-left: 3px solid var(--accent);
    padding: .75rem 1rem;
    border-radius: 0 var(--radius) var(--radius) 0;
    font-size: .85rem;
    color: var(--muted);
}
.band-hint { border-left: 2px solid; padding-left: 1rem; margin: .5rem 0 1rem; font-size: .85rem; }
</style>
""", unsafe_allow_html=True)


# ─────────────────────────────────────────────────────────────────────────────
# SESSION + HELPERS
# ─────────────────────────────────────────────────────────────────────────────
def get_state() -> AppState:
    if "stridelab" not in st.session_state:
        st.session_state["stridelab"] = AppState(raster=OpenCVRaster())
    return st.session_state["stridelab"]


def gemini_api_key() -> str:
    if config.GEMINI_API_KEY:
        return config.GEMINI_API_KEY
    try:
        return st.secrets.get("GEMINI_API_KEY", "")
    except FileNotFoundError:
        # no secrets.toml
        return ""


# Keyed widgets are driven from AppState: each run pushes the model value into
# the widget key before drawing, and on_change callbacks apply user edits
# before the script runs.
def push_widget(key, value):
    st.session_state[key] = value


def on_band_slider(band, fit_w, fit_h):
    state = get_state()
    left, right = st.session_state[f"{band}_edges"]
    apply_slider_values(state.dragger, band, left, right,
                        st.session_state[f"{band}_y"], fit_w, fit_h,
                        offset=st.session_state[f"{band}_offset"])


def on_display_change():
    disp = get_state().display
    ss = st.session_state
    disp.set_shoe_size(ss.get("shoe_size", disp.shoe_size))
    disp.set_sensitivity(ss.get("sensitivity", disp.sensitivity))
    disp.set_contrast(ss.get("contrast", disp.contrast))
    disp.high_contrast = bool(ss.get("high_contrast", disp.high_contrast))
    disp.set_mode(ss.get("view_mode", disp.mode))


def on_shoe_choice():
    get_state().select_shoe(st.session_state["shoe_choice"])


@st.cache_data(show_spinner=False, max_entries=32)
def cached_mesh(image_id, _pixels, width, height, sensitivity, contrast):
    """Sampled points + RGBA layer, keyed on the image id instead of its pixels."""
    points = list(scan_footprint(_pixels, width, height, sensitivity, contrast))
    return points, render_mesh(points, width, height)


def render_view(state: AppState, read_only: bool, show_bands: bool = True):
    """Preview + point cloud + bands. Returns (rgb view, points, (w, h))."""
    img  = state.image
    disp = state.display
    w, h = fit_dimensions(config.PREVIEW_WIDTH, config.PREVIEW_HEIGHT, img.width, img.height)
    if w <= 0 or h <= 0:
        return None, [], (0, 0)

    base_rgb = cv2.cvtColor(
        preview_buffer(img, w, h, disp.contrast, disp.high_contrast, state.raster),
        cv2.COLOR_BGR2RGB,
    )

    points, mesh = [], None
    if disp.mode != "image":
        # Streamlit runs one script pass at a time, so this ticket always wins;
        # stale-ticket rejection is covered by the session tests.
        ticket = state.overlay_ticket(img.image_id)
        points, layer = cached_mesh(img.image_id, img.pixels, w, h,
                                    disp.sensitivity, disp.contrast)
        if state.accept_overlay(ticket):
            mesh = layer

    view = compose_view(base_rgb, mesh, disp.mode)
    if show_bands:
        view = draw_bands(view, state.bands, read_only=read_only)
    return view, points, (w, h)


def png_bytes(rgb: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(rgb).save(buf, format="PNG")
    return buf.getvalue()


def run_scan_animation(slot):
    """Cosmetic progress sweep; the result is already computed when this runs."""
    bar = slot.progress(0, text="Scanning footprint… 0%")
    for p in range(0, 101, config.SCAN_STEP_PERCENT):
        bar.progress(p, text=f"Scanning footprint… {p}%")
        time.sleep(config.SCAN_TICK_SECONDS)
    slot.empty()


state = get_state()

# ─────────────────────────────────────────────────────────────────────────────
# UI - HERO
# ─────────────────────────────────────────────────────────────────────────────
st.markdown("""
<div class="hero">
  <span style="font-size:1.8rem">👣</span>
  <h1>StrideLab</h1>
  <span class="tag">CSI · SI · POINT CLOUD</span>
</div>
""", unsafe_allow_html=True)

# ─────────────────────────────────────────────────────────────────────────────
# SIDEBAR
# ─────────────────────────────────────────────────────────────────────────────
with st.sidebar:
    st.markdown("## ⚙️ Configuration")

    st.markdown("### 🤖 AI advisor")
    if gemini_api_key():
        st.success(f"✅ Gemini key configured — `{config.GEMINI_MODEL}`")
    else:
        st.warning("⚙️ No `GEMINI_API_KEY` — the report will skip AI insights.")

    if state.step > STEP_UPLOAD:
        st.divider()
        if st.button("↺ Reset", width="stretch", key="reset"):
            state.reset()
            st.rerun()

    st.divider()
    st.markdown("### 📋 How it works")
    st.markdown("""
1. **Upload** a footprint (ink, wet sand, pressure mat)
2. **Calibrate** the forefoot, arch and heel bands on the widest parts
3. **CSI** = arch ÷ forefoot, **SI** = arch ÷ heel
4. **Classify** — flat · neutral · high arch
5. **Advice** — shoe models and one exercise from Gemini
""")


# ─────────────────────────────────────────────────────────────────────────────
# STEP 1 - UPLOAD
# ─────────────────────────────────────────────────────────────────────────────
if state.step == STEP_UPLOAD:
    st.markdown("### Footprint analysis")
    tab_upload, tab_camera = st.tabs(["📁 Upload footprint", "📷 Take a photo"])

    data = None
    with tab_upload:
        uploaded = st.file_uploader(
            "Drop your footprint image here (JPG, PNG, WEBP)",
            type=["jpg", "jpeg", "png", "webp"],
            label_visibility="collapsed",
        )
        if uploaded:
            data = uploaded.getvalue()

    with tab_camera:
        cam_img = st.camera_input("Photograph your footprint from directly above")
        if cam_img:
            data = cam_img.getvalue()

    if data is not None:
        try:
            state.load_image(data)
        except DecodeError as e:
            logger.warning("Upload rejected: %s", e)
            st.error(f"❌ {e}")
            st.markdown(
                '<div class="info-box">Try another file — export it as JPG or PNG '
                'and upload again.</div>',
                unsafe_allow_html=True,
            )
        else:
            st.rerun()
    else:
        st.markdown("""
<div class="card" style="text-align:center;padding:3rem;">
  <div style="font-size:4rem;margin-bottom:1rem">👣</div>
  <h3 style="color:var(--muted);font-size:1.3rem">Upload a footprint image to begin</h3>
</div>
""", unsafe_allow_html=True)


# ─────────────────────────────────────────────────────────────────────────────
# STEP 2 - CALIBRATION
# ─────────────────────────────────────────────────────────────────────────────
elif state.step == STEP_CALIBRATE:
    disp = state.display
    fit_w, fit_h = fit_dimensions(config.PREVIEW_WIDTH, config.PREVIEW_HEIGHT,
                                  state.image.width, state.image.height)

    col_view, col_panel = st.columns([8, 4], gap="large")

    with col_panel:
        st.markdown("### 📐 Calibration")
        push_widget("shoe_size", disp.shoe_size)
        st.number_input(
            "Shoe size (EU)",
            min_value=config.SHOE_SIZE_RANGE[0],
            max_value=config.SHOE_SIZE_RANGE[1],
            key="shoe_size",
            on_change=on_display_change,
        )

        hints = {
            "forefoot": ("1. Forefoot", "var(--accent)"),
            "arch":     ("2. Arch", "var(--amber)"),
            "heel":     ("3. Heel", "var(--purple)"),
        }
        for key in BAND_KEYS:
            title, color = hints[key]
            st.markdown(
                f'<div class="band-hint" style="border-color:{color}">'
                f'<strong style="color:{color}">{title}</strong><br>'
                f'Place the band on the widest part of the {key}.</div>',
                unsafe_allow_html=True,
            )
            edges, y, x = slider_values(state.bands[key])
            push_widget(f"{key}_edges", edges)
            push_widget(f"{key}_y", y)
            push_widget(f"{key}_offset", x)
            slider_args = dict(on_change=on_band_slider, args=(key, fit_w, fit_h))
            st.slider(f"{key} edges (%)", 0.0, 100.0, step=0.5,
                      key=f"{key}_edges", **slider_args)
            st.slider(f"{key} position (%)", 0.0, 100.0, step=0.5,
                      key=f"{key}_y", **slider_args)
            st.slider(f"{key} offset (%)", 0.0, 100.0, step=0.5,
                      key=f"{key}_offset", **slider_args)

        scan_slot = st.empty()
        if st.button("▶ Start analysis", width="stretch", type="primary", key="start_analysis"):
            try:
                state.start_analysis()
            except InputError as e:
                st.error(f"❌ {e}")
            else:
                run_scan_animation(scan_slot)
                st.rerun()

    with col_view:
        push_widget("sensitivity", disp.sensitivity)
        push_widget("contrast", disp.contrast)
        push_widget("high_contrast", disp.high_contrast)
        push_widget("view_mode", disp.mode)

        c1, c2, c3 = st.columns([3, 3, 2])
        with c1:
            st.slider("Sensitivity", 0, 100, key="sensitivity", on_change=on_display_change)
        with c2:
            st.slider("Contrast", 50, 250, key="contrast", on_change=on_display_change)
        with c3:
            st.toggle("High-res", key="high_contrast", on_change=on_display_change)
            st.radio("View", config.DISPLAY_MODES, key="view_mode", horizontal=True,
                     label_visibility="collapsed", on_change=on_display_change)

        view, points, (w, h) = render_view(state, read_only=False)
        if view is None:
            st.warning("⚠️ Could not size the preview for this image.")
        else:
            st.image(view, width=w)
            s = mesh_summary(points)
            st.caption(f"{s['total']} contact points · sensitivity {disp.sensitivity}% "
                       f"· contrast {disp.contrast}%")


# ─────────────────────────────────────────────────────────────────────────────
# STEP 3 - REPORT
# ─────────────────────────────────────────────────────────────────────────────
elif state.step == STEP_REPORT and state.result is not None:
    result = state.result
    ft     = result.foot_type
    size   = state.display.shoe_size

    col_view, col_report = st.columns([1, 1], gap="large")

    with col_view:
        view, points, _ = render_view(state, read_only=True)
        if view is not None:
            st.image(view, width="stretch")
            s = mesh_summary(points)
            st.markdown(f"""
<div class="tier-row">
  <span class="tier high">high {s['high']}</span>
  <span class="tier medium">medium {s['medium']}</span>
  <span class="tier low">low {s['low']}</span>
</div>
""", unsafe_allow_html=True)
            st.download_button(
                "⬇️ Download analysis image",
                data=png_bytes(view),
                file_name="stridelab_footprint.png",
                mime="image/png",
            )
        if st.button("✎ Adjust bands", key="adjust_bands"):
            state.recalibrate()
            st.rerun()

    with col_report:
        st.markdown(f"""
<div class="card">
  <div style="display:flex;justify-content:space-between">
    <span class="kicker">Report · {ft.pronation}</span>
    <span class="kicker">EU {size}</span>
  </div>
  <h3 style="color:{ft.color}">{ft.name}</h3>
  <p style="color:#94a3b8">{ft.description}</p>
</div>
""", unsafe_allow_html=True)

        if state.advisory_pending:
            with st.spinner("✨ AI expert is picking shoe models…"):
                state.set_advisory(fetch_advice(
                    ft.name, size, result.csi_display, result.si_display,
                    api_key=gemini_api_key(),
                ))

        adv = state.advisory
        if adv is not None:
            with st.container(border=True):
                st.markdown("#### ✨ AI insights")
                st.write(adv.explanation)
                if adv.exercise:
                    st.markdown(f"**🏋️ Exercise — {adv.exercise.name}**")
                    st.caption(adv.exercise.instruction)

        st.markdown(f"""
<div class="metric-row">
  <div class="metric-box"><div class="m-label">CSI INDEX</div>
    <div class="m-value">{result.csi_display}</div></div>
  <div class="metric-box"><div class="m-label">SI INDEX</div>
    <div class="m-value">{result.si_display}</div></div>
</div>
""", unsafe_allow_html=True)

        st.markdown(f"""
<div class="card reco">
  <span class="kicker" style="color:var(--accent)">Recommendation</span>
  <h3>{ft.shoe_type}</h3>
  <p style="color:#94a3b8;font-size:.85rem">Watch for: {", ".join(ft.medical_risks)}</p>
</div>
""", unsafe_allow_html=True)

        if adv is not None and adv.shoes:
            if state.selected_shoe not in adv.shoes:
                state.select_shoe(adv.shoes[0])
            push_widget("shoe_choice", state.selected_shoe)
            st.radio("Top models (click to select)", adv.shoes, key="shoe_choice",
                     horizontal=True, on_change=on_shoe_choice)

        link = state.shopping_link()
        if link:
            first_word = shoe_display_name(state.selected_shoe).split(" ")[0]
            st.link_button(f"🛒 Check prices for {first_word}", link, width="stretch")
        else:
            st.button("Choose a model", disabled=True, width="stretch", key="choose_model")

        with st.expander("📊 Foot type reference"):
            st.dataframe(pd.DataFrame(foot_type_table()), width="stretch", hide_index=True)

else:
    state.reset()
    st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# FOOTER
# ─────────────────────────────────────────────────────────────────────────────
st.markdown("---")
st.caption("StrideLab · Chippaux–Smirak & Staheli indices · Built with Streamlit")
