"""
Eye on Water Waterbody Explorer
Fetches EOW observations for a bounding box and charts FU values per waterbody
"""

import os

import streamlit as st
from streamlit_folium import st_folium

from components.map_rendering import build_chart_map
from components.pipeline_state import PipelineState
from components.result_display import render_layer_charts, render_recent_measurements, render_stats
from layer_registry import build_registry
from waterbodies.log import configure_logging
from waterbodies.observations import DEFAULT_RECENT_MEASUREMENTS, MeasurementIndex
from waterbodies.pipeline import PipelineConfig
from waterbodies.stats import calculate_stats

PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))

# Bounding boxes (minx, miny, maxx, maxy) in EPSG:4326
REGIONS = {
    "Canberra": (148.95, -35.50, 149.30, -35.10),
    "Lake Burley Griffin": (149.07, -35.31, 149.16, -35.28),
    "Australian Capital Territory": (148.76, -35.92, 149.40, -35.12),
}

# Page configuration
st.set_page_config(
    page_title="EOW Waterbody Explorer",
    page_icon="💧",
    layout="wide",
    initial_sidebar_state="expanded"
)

configure_logging(os.environ.get("EOW_LOG_LEVEL", "INFO"))

registry = build_registry()

# SIDEBAR: Observation area
st.sidebar.markdown("### 📍 Observation Area")
region = st.sidebar.selectbox("Region:", list(REGIONS), help="Observations are fetched for this bounding box")

st.sidebar.markdown("---")
st.sidebar.markdown("### 🌊 Waterbody Layers")
enabled_keys = [k for k, s in registry.items() if s.enabled]
selected_layers = st.sidebar.multiselect(
    "Show charts for:",
    enabled_keys,
    default=[k for k in enabled_keys if k.startswith("i5516")],
    format_func=lambda k: registry[k].label,
)

with st.sidebar.expander("Error margin"):
    margin_meters = st.number_input("Radius (m)", min_value=0, value=135, step=5)
    margin_points = st.number_input("Points per ring", min_value=1, value=4, step=1)
    clip_layers = st.checkbox("Only test waterbodies near observations", value=False)
    draw_lines = st.checkbox("Draw lines to observations", value=False)

config = PipelineConfig(
    error_margin_meters=margin_meters,
    error_margin_points=int(margin_points),
    clip_layers_to_points=clip_layers,
)
if st.session_state.get("eow_config") != config:
    # Margin settings feed the expander, which is built with the pipeline
    PipelineState(registry).reset()
    st.session_state["eow_config"] = config

state = PipelineState(registry, config)

st.title("💧 Eye on Water Waterbody Explorer")
st.markdown("Forel-Ule (FU) colour observations grouped by the waterbody they were taken in.")

with st.spinner("Loading waterbody layers..."):
    loaded = state.ensure_layers_loaded()
failed = [k for k, ok in loaded.items() if not ok]
if failed:
    st.warning(f"Some layers could not be loaded: {', '.join(failed)}")

if st.sidebar.button("Fetch observations", type="primary") or state.get("region") != region:
    with st.spinner(f"Fetching observations for {region}..."):
        if not state.load_bbox(REGIONS[region]):
            st.error("Could not fetch observations from the Eye on Water service.")
    state.set("region", region)

observations = state.pipeline.point_store.value or []
if not observations:
    st.info("No observations loaded yet.")
    st.stop()

render_stats(calculate_stats(observations))

charts = {k: v for k, v in state.get_charts().items() if k in selected_layers}
layers = {
    k: state.pipeline.layer_store.get_layer(k)
    for k in selected_layers
    if state.pipeline.layer_store.has_layer(k)
}

st.markdown("### 🗺️ Map")
map_obj = build_chart_map(observations, layers, charts, draw_lines=draw_lines)
st_folium(map_obj, width=None, height=600, returned_objects=[])

for layer_key in selected_layers:
    if layer_key in charts:
        render_layer_charts(registry[layer_key].label, charts[layer_key])

render_recent_measurements(MeasurementIndex(observations), n=DEFAULT_RECENT_MEASUREMENTS)
