"""Tests for the ONNX Runtime session wrapper."""

import numpy as np
import pytest

from conftest import INPUT_NAME, build_model
from prediction import runner as runner_module
from prediction.errors import ModelLoadError
from prediction.runner import InferenceRunner


@pytest.fixture(autouse=True)
def _reset_process_runner():
    yield
    runner_module.close_runner()


def test_loads_model_and_discovers_names(model_path):
    with InferenceRunner(model_path) as runner:
        assert runner.input_name == INPUT_NAME
        assert runner.output_names == ["main_output", "severity_output"]
        assert runner.is_loaded


def test_predict_returns_every_declared_output(model_path):
    tensor = np.zeros((1, 224, 224, 3), dtype=np.float32)
    tensor[..., 2] = 0.5

    with InferenceRunner(model_path) as runner:
        results = runner.predict(tensor)

    assert set(results) == {"main_output", "severity_output"}
    assert results["main_output"].shape == (1, 3)
    assert results["main_output"][0] == pytest.approx([0.0, 0.0, 0.5])


def test_predict_casts_input_to_float32(model_path):
    tensor = np.ones((1, 224, 224, 3), dtype=np.float64)

    with InferenceRunner(model_path) as runner:
        results = runner.predict(tensor)

    assert results["severity_output"][0] == pytest.approx([1.0, 1.0, 1.0])


def test_missing_model_file_raises(tmp_path):
    with pytest.raises(ModelLoadError, match="not found"):
        InferenceRunner(tmp_path / "absent.onnx")


def test_malformed_model_file_raises(tmp_path):
    bad = tmp_path / "broken.onnx"
    bad.write_bytes(b"\x00\x01 this is not a protobuf graph")

    with pytest.raises(ModelLoadError, match="Could not load model"):
        InferenceRunner(bad)


def test_predict_after_close_raises(model_path):
    runner = InferenceRunner(model_path)
    runner.close()

    assert not runner.is_loaded
    with pytest.raises(ModelLoadError, match="released"):
        runner.predict(np.zeros((1, 224, 224, 3), dtype=np.float32))


def test_session_released_when_block_raises(model_path):
    with pytest.raises(KeyError):
        with InferenceRunner(model_path) as runner:
            raise KeyError("boom")

    assert not runner.is_loaded


def test_process_runner_lifecycle(model_path, monkeypatch):
    monkeypatch.setenv("MODEL_PATH", str(model_path))

    with pytest.raises(RuntimeError, match="not loaded"):
        runner_module.runner()
    assert not runner_module.is_ready()

    loaded = runner_module.init_runner()
    assert runner_module.init_runner() is loaded
    assert runner_module.runner() is loaded
    assert runner_module.is_ready()

    runner_module.close_runner()
    assert not runner_module.is_ready()
    assert not loaded.is_loaded


def test_init_runner_fails_fast_without_model(tmp_path, monkeypatch):
    monkeypatch.setenv("MODEL_PATH", str(tmp_path / "missing.onnx"))

    with pytest.raises(ModelLoadError):
        runner_module.init_runner()
    assert not runner_module.is_ready()


def test_unknown_providers_fall_back_to_cpu(monkeypatch):
    monkeypatch.setenv("MODEL_PROVIDERS", "NoSuchExecutionProvider")

    assert runner_module.execution_providers() == ["CPUExecutionProvider"]


def test_extra_outputs_are_reported(tmp_path):
    path = build_model(tmp_path / "three.onnx", outputs=("main_output", "extra_output", "severity_output"))

    with InferenceRunner(path) as runner:
        assert runner.output_names == ["main_output", "extra_output", "severity_output"]
        results = runner.predict(np.zeros((1, 224, 224, 3), dtype=np.float32))

    assert set(results) == {"main_output", "extra_output", "severity_output"}
