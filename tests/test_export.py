"""
Export Tests - torch classifier → ONNX → line runtime.
"""

import numpy as np
import pytest

torch = pytest.importorskip("torch")
pytest.importorskip("torchvision")
pytest.importorskip("onnx")
pytest.importorskip("onnxruntime")

import torch.nn as nn

from conftest import bright, textured, write_image

from Core_LineInspector.engine.inspection import InspectionEngine, InspectionVerdict
from Core_LineInspector.engine.runtime import OnnxRuntime
from Core_LineInspector.export.onnx_export import (
    IMAGENET_MEAN,
    IMAGENET_STD,
    ExportWrapper,
    build_classifier,
    export_onnx,
    load_checkpoint,
)
from Core_LineInspector.preprocess.image import ImagePreprocessor


class TinyNet(nn.Module):
    """Two-class head on channel means: NG score grows with brightness."""

    def __init__(self):
        super().__init__()
        self.fc = nn.Linear(3, 2)
        with torch.no_grad():
            self.fc.weight.copy_(torch.tensor([[-4.0, -4.0, -4.0], [4.0, 4.0, 4.0]]))
            self.fc.bias.copy_(torch.tensor([6.0, -6.0]))

    def forward(self, x):
        return self.fc(x.mean(dim=(2, 3)))


class TestExportWrapper:

    def test_imagenet_normalization_math(self):
        wrapper = ExportWrapper(nn.Identity(), imagenet_norm=True, softmax=False)
        x = torch.full((1, 3, 2, 2), 0.5)

        y = wrapper(x)

        for c in range(3):
            expected = (0.5 - IMAGENET_MEAN[c]) / IMAGENET_STD[c]
            assert torch.allclose(y[0, c], torch.full((2, 2), expected))

    def test_plain_passthrough(self):
        wrapper = ExportWrapper(nn.Identity(), imagenet_norm=False, softmax=False)
        x = torch.rand(1, 3, 4, 4)
        assert torch.equal(wrapper(x), x)

    def test_softmax_output(self):
        wrapper = ExportWrapper(TinyNet(), softmax=True)
        y = wrapper(torch.rand(2, 3, 8, 8))
        assert torch.allclose(y.sum(dim=1), torch.ones(2))


class TestBuildClassifier:

    def test_resnet_head(self):
        model = build_classifier("resnet18", num_classes=2)
        assert model.fc.out_features == 2

    def test_unknown_arch(self):
        with pytest.raises(ValueError):
            build_classifier("not_a_model")

    def test_load_strips_dataparallel_prefix(self, tmp_path):
        src = TinyNet()
        ckpt = tmp_path / "cam01.pth"
        torch.save({"state_dict": {f"module.{k}": v for k, v in src.state_dict().items()}}, ckpt)

        dst = nn.Module()
        dst.fc = nn.Linear(3, 2)
        load_checkpoint(dst, ckpt)

        assert torch.equal(dst.fc.weight, src.fc.weight)
        assert torch.equal(dst.fc.bias, src.fc.bias)


class TestExportedModel:

    @pytest.fixture
    def onnx_path(self, tmp_path):
        return export_onnx(TinyNet(), tmp_path / "Cam01.onnx", input_size=(32, 32))

    def test_runtime_accepts_export(self, onnx_path):
        model = OnnxRuntime(device="cpu", expected_shape=(1, 3, 32, 32)).load(onnx_path)
        try:
            assert model.input_name == "input"
            outputs = model.run(np.zeros((1, 3, 32, 32), dtype=np.float32))
            assert outputs[0].shape == (1, 2)
            assert outputs[0].sum() == pytest.approx(1.0, abs=1e-5)
        finally:
            model.close()

    def test_runtime_rejects_wrong_input_size(self, onnx_path):
        from Core_LineInspector.errors import ModelLoadError

        with pytest.raises(ModelLoadError):
            OnnxRuntime(device="cpu", expected_shape=(1, 3, 224, 224)).load(onnx_path)

    def test_end_to_end_verdicts(self, onnx_path, tmp_path):
        dark = write_image(tmp_path / "a.png", textured(1, low=60, high=100))
        light = write_image(tmp_path / "b.png", bright(2))

        engine = InspectionEngine(
            OnnxRuntime(device="cpu", expected_shape=(1, 3, 32, 32)),
            preprocessor=ImagePreprocessor(width=32, height=32),
        )
        with engine:
            engine.load_model(onnx_path)
            assert engine.predict(dark) is InspectionVerdict.OK
            assert engine.predict(light) is InspectionVerdict.NG
            assert 0.0 <= engine.get_raw_score(dark) <= 1.0
        assert engine.is_closed
