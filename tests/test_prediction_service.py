"""Tests for the preprocessing -> inference -> extraction chain."""

import numpy as np
import pytest

from conftest import build_model, image_bytes
from prediction import service
from prediction.errors import DecodeError, OutputMissingError
from prediction.preprocessing import PreprocessConfig
from prediction.runner import InferenceRunner


@pytest.fixture
def runner(model_path):
    with InferenceRunner(model_path) as loaded:
        yield loaded


def test_predict_image_returns_both_outputs(runner):
    out = service.predict_image(image_bytes(color=(255, 0, 0)), runner=runner)

    assert set(out) == {"main_output", "severity_output"}
    assert out["main_output"] == pytest.approx([1.0, 0.0, 0.0], abs=1e-6)
    assert out["severity_output"] == pytest.approx([1.0, 0.0, 0.0], abs=1e-6)


def test_predict_image_honours_channel_order(runner):
    out = service.predict_image(
        image_bytes(color=(255, 0, 0)),
        runner=runner,
        config=PreprocessConfig(channel_order="BGR"),
    )

    assert out["main_output"] == pytest.approx([0.0, 0.0, 1.0], abs=1e-6)


def test_double_precision_outputs_are_narrowed(tmp_path):
    path = build_model(tmp_path / "double.onnx", double_outputs=("severity_output",))

    with InferenceRunner(path) as runner:
        out = service.predict_image(image_bytes(color=(0, 255, 0)), runner=runner)

    assert out["severity_output"] == pytest.approx([0.0, 1.0, 0.0], abs=1e-6)


def test_model_without_severity_head_yields_none(tmp_path):
    path = build_model(tmp_path / "main_only.onnx", outputs=("main_output",))

    with InferenceRunner(path) as runner:
        out = service.predict_image(image_bytes(), runner=runner)

    assert out["main_output"] is not None
    assert out["severity_output"] is None


def test_decode_error_propagates_without_running_model(runner, monkeypatch):
    calls = []
    monkeypatch.setattr(runner, "predict", lambda tensor: calls.append(tensor))

    with pytest.raises(DecodeError):
        service.predict_image(b"not an image", runner=runner)
    assert calls == []


def test_missing_result_propagates(runner, monkeypatch):
    monkeypatch.setattr(
        runner,
        "predict",
        lambda tensor: {"main_output": np.zeros((1, 3), dtype=np.float32)},
    )

    with pytest.raises(OutputMissingError):
        service.predict_image(image_bytes(), runner=runner)


def test_max_upload_bytes(monkeypatch):
    monkeypatch.delenv("MAX_UPLOAD_BYTES", raising=False)
    assert service.max_upload_bytes() == service.DEFAULT_MAX_UPLOAD_BYTES

    monkeypatch.setenv("MAX_UPLOAD_BYTES", "2048")
    assert service.max_upload_bytes() == 2048

    monkeypatch.setenv("MAX_UPLOAD_BYTES", "-1")
    assert service.max_upload_bytes() == service.DEFAULT_MAX_UPLOAD_BYTES


def test_shared_runner_serves_concurrent_calls(runner):
    from concurrent.futures import ThreadPoolExecutor

    colors = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0),
              (0, 255, 255), (255, 0, 255), (255, 255, 255), (0, 0, 0)]
    payloads = [image_bytes(color=c, size=(40 + 7 * i, 30 + 5 * i)) for i, c in enumerate(colors * 2)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda data: service.predict_image(data, runner=runner), payloads))

    for color, out in zip(colors * 2, results):
        expected = [c / 255 for c in color]
        assert out["main_output"] == pytest.approx(expected, abs=1e-6)
        assert out["severity_output"] == pytest.approx(expected, abs=1e-6)
