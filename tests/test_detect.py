import numpy as np
import pytest
import torch

from parkscan import detect
from parkscan.detect import YoloVehicleDetector
from parkscan.errors import ConfigurationError, DetectorUnavailable
from parkscan.geometry import Rect


class FakeBoxes:
    def __init__(self, xyxy, conf, cls):
        self.xyxy = torch.tensor(xyxy, dtype=torch.float32).reshape(-1, 4)
        self.conf = torch.tensor(conf, dtype=torch.float32)
        self.cls = torch.tensor(cls, dtype=torch.float32)

    def __len__(self):
        return self.xyxy.shape[0]


class FakeResult:
    def __init__(self, boxes):
        self.boxes = boxes


class FakeModel:
    """Returns the same boxes (in patch coordinates) for every call."""

    names = {0: "person", 2: "car", 7: "truck"}

    def __init__(self, xyxy=(), conf=(), cls=(), error=None):
        self.xyxy, self.conf, self.cls = list(xyxy), list(conf), list(cls)
        self.error = error
        self.patches = []

    def predict(self, image, **kwargs):
        if self.error is not None:
            raise self.error
        self.patches.append(image.shape[:2])
        return [FakeResult(FakeBoxes(self.xyxy, self.conf, self.cls))]


def _detector(model, **kwargs):
    d = YoloVehicleDetector(**kwargs)
    d._model = model
    return d


def test_whole_image_inference():
    model = FakeModel([[10.7, 20.2, 50.9, 120.0], [0, 0, 5, 5]], [0.9, 0.4], [2, 0])
    out = _detector(model).detect(np.zeros((200, 300, 3), np.uint8))
    assert model.patches == [(200, 300)]
    assert [d.class_id for d in out] == [2, 0]
    assert out[0].box == Rect(10, 20, 40, 100)
    assert out[0].class_name == "car"
    assert out[0].confidence == pytest.approx(0.9)


def test_no_boxes():
    out = _detector(FakeModel()).detect(np.zeros((50, 50, 3), np.uint8))
    assert out == []


def test_tiled_inference_shifts_and_merges():
    model = FakeModel([[0, 0, 10, 10]], [0.8], [2])
    out = _detector(model, tile=60, overlap=20).detect(np.zeros((100, 100, 3), np.uint8))
    assert len(model.patches) == 4
    assert sorted((d.box.x, d.box.y) for d in out) == [(0, 0), (0, 40), (40, 0), (40, 40)]


def test_tiled_inference_suppresses_cross_tile_duplicates():
    # A box near the right edge of each tile lands on the same spot twice.
    model = FakeModel([[40, 0, 60, 20], [0, 0, 20, 20]], [0.9, 0.7], [2, 2])
    out = _detector(model, tile=60, overlap=20).detect(np.zeros((60, 100, 3), np.uint8))
    assert len(model.patches) == 2
    assert sorted((d.box.x, d.box.y) for d in out) == [(0, 0), (40, 0), (80, 0)]


def test_gray_input_is_accepted():
    model = FakeModel([[1, 1, 5, 5]], [0.5], [2])
    out = _detector(model).detect(np.zeros((20, 20), np.uint8))
    assert len(out) == 1


def test_inference_failure_raises_unavailable():
    d = _detector(FakeModel(error=RuntimeError("CUDA error")))
    with pytest.raises(DetectorUnavailable) as exc:
        d.detect(np.zeros((20, 20, 3), np.uint8))
    assert exc.value.stage == "vehicle_detection"


def test_model_load_failure_raises_unavailable(monkeypatch):
    def broken_yolo(path):
        raise FileNotFoundError(path)

    monkeypatch.setattr(detect, "YOLO", broken_yolo)
    with pytest.raises(DetectorUnavailable):
        YoloVehicleDetector(model_path="missing.pt").detect(np.zeros((20, 20, 3), np.uint8))


def test_model_is_loaded_once(monkeypatch):
    loads = []

    def fake_yolo(path):
        loads.append(path)
        return FakeModel()

    monkeypatch.setattr(detect, "YOLO", fake_yolo)
    d = YoloVehicleDetector(model_path="yolov8n.pt")
    d.detect(np.zeros((20, 20, 3), np.uint8))
    d.detect(np.zeros((20, 20, 3), np.uint8))
    assert loads == ["yolov8n.pt"]


@pytest.mark.parametrize("overlap", [60, 100, -1])
def test_overlap_must_be_smaller_than_tile(overlap):
    with pytest.raises(ConfigurationError):
        YoloVehicleDetector(tile=60, overlap=overlap)


def test_overlap_is_ignored_without_tiling():
    assert YoloVehicleDetector(overlap=256).tile is None
