"""
ParkScan Streamlit app: parking-slot occupancy from an uploaded aerial image.
"""

from __future__ import annotations

import logging

import streamlit as st

from parkscan.config import AnalysisConfig
from parkscan.detect import YoloVehicleDetector
from parkscan.errors import ConfigurationError, InvalidImage, ParkScanError
from parkscan.imaging import decode_image
from parkscan.pipeline import analyze_image
from parkscan.report import slots_frame, summary_frame
from parkscan.runner import SerializedDetector
from parkscan.viz import draw_detections, draw_slots

logging.basicConfig(level=logging.INFO)


# ----- Cached helpers -----

@st.cache_resource
def _cached_detector(model_path: str, conf: float, imgsz: int, tile: int | None) -> SerializedDetector:
    # Shared by every session; one worker thread owns the YOLO model.
    detector = YoloVehicleDetector(model_path=model_path, conf=conf, imgsz=imgsz, tile=tile)
    detector.load()
    return SerializedDetector(detector)


# ----- Page -----

st.set_page_config(page_title="ParkScan", page_icon="🅿️", layout="wide")

st.title("ParkScan")
st.markdown(
    "Upload an **aerial image of a parking lot**: we find painted slot outlines, skip yellow restricted zones, "
    "run vehicle detection (YOLO), and mark each slot as occupied or available."
)

st.divider()

uploaded = st.file_uploader("Parking lot image", type=["jpg", "jpeg", "png"])

# Defaults match AnalysisConfig
model_path = "yolov8s.pt"
min_area, max_area = 2500, 7000
min_aspect, max_aspect = 0.2, 0.7
occupancy_iou = 0.10
det_conf = 0.25
imgsz = 640
tile = None
degrade = False
show_masks = False
show_vehicles = False

with st.expander("Advanced", expanded=False):
    model_path = st.text_input("YOLO weights", value=model_path)
    min_area, max_area = st.slider("Slot area (px²)", min_value=500, max_value=20000, value=(min_area, max_area), step=100)
    min_aspect, max_aspect = st.slider(
        "Slot aspect ratio (w/h)", min_value=0.05, max_value=3.0, value=(min_aspect, max_aspect), step=0.05
    )
    occupancy_iou = st.slider("Occupancy IoU threshold", min_value=0.01, max_value=0.9, value=occupancy_iou, step=0.01)
    det_conf = st.slider("Detection confidence", min_value=0.01, max_value=0.9, value=det_conf, step=0.01)
    imgsz = st.select_slider("YOLO imgsz", options=[640, 960, 1280, 1536], value=imgsz)
    if st.checkbox("Tiled inference (large images)", value=False):
        tile = st.select_slider("Tile size", options=[512, 768, 1024, 1280], value=1024)
    degrade = st.checkbox("Continue without vehicle detection if the model fails", value=degrade)
    show_masks = st.checkbox("Debug: show line and restricted-zone masks", value=show_masks)
    show_vehicles = st.checkbox("Debug: show vehicle boxes", value=show_vehicles)

run = st.button("Analyze", type="primary", disabled=uploaded is None)
if not run or uploaded is None:
    st.stop()


# ----- Run pipeline -----

try:
    config = AnalysisConfig(
        min_slot_area=min_area,
        max_slot_area=max_area,
        min_aspect_ratio=min_aspect,
        max_aspect_ratio=max_aspect,
        occupancy_iou_threshold=occupancy_iou,
        degrade_on_detector_failure=degrade,
    )
except ConfigurationError as e:
    st.error(f"Invalid settings: {e}")
    st.stop()

try:
    image = decode_image(uploaded.getvalue())
except InvalidImage as e:
    st.error(f"Could not read image: {e}")
    st.stop()

st.caption(f"Image size: {image.shape[1]}x{image.shape[0]}")

with st.spinner("Loading YOLO model…"):
    try:
        detector = _cached_detector(model_path, det_conf, int(imgsz), tile)
    except ParkScanError as e:
        if not degrade:
            st.error(f"Failed to load detection model: {e}")
            st.stop()
        st.warning(f"Detection model unavailable, continuing without it: {e}")
        detector = None

with st.spinner("Analyzing parking lot…"):
    try:
        result = analyze_image(image, detector, config, keep_masks=show_masks)
    except ParkScanError as e:
        st.error(f"Analysis failed: {e}")
        st.stop()

summary = result.summary

col_img, col_metrics = st.columns([2, 1])

with col_img:
    annotated = draw_slots(image, result)
    if show_vehicles:
        annotated = draw_detections(annotated, result.vehicles)
    st.image(annotated, use_container_width=True, channels="BGR")

with col_metrics:
    st.metric("Total slots", summary.total)
    st.metric("Occupied", summary.occupied)
    st.metric("Available", summary.available)
    st.metric("Occupancy rate", f"{summary.occupancy_rate_percent:.1f}%")
    st.caption(f"Vehicles detected: {len(result.vehicles)}")
    if result.occupancy_degraded:
        st.warning("Vehicle detection failed: occupancy is unknown, all slots shown as available.")

if show_masks:
    c1, c2 = st.columns(2)
    with c1:
        st.image(result.line_mask, caption="Line mask", use_container_width=True, clamp=True)
    with c2:
        st.image(result.exclusion_mask, caption="Restricted zones (dilated)", use_container_width=True, clamp=True)

st.divider()
st.subheader("Slots")
slots_df = slots_frame(result)
st.dataframe(slots_df, use_container_width=True, hide_index=True)

c1, c2 = st.columns(2)
with c1:
    st.download_button(
        "Download summary CSV",
        data=summary_frame(result).to_csv(index=False).encode("utf-8"),
        file_name="parking_occupancy_report.csv",
        mime="text/csv",
    )
with c2:
    st.download_button(
        "Download slots CSV",
        data=slots_df.to_csv(index=False).encode("utf-8"),
        file_name="parking_slots.csv",
        mime="text/csv",
    )
