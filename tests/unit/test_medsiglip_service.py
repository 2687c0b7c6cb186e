import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from app.services.medsiglip_service import MedSigLIPService


class FakeInputs(dict):
    def to(self, device):
        return self


def test_model_is_not_loaded_at_import():
    service = MedSigLIPService(model_name="test/medsiglip")
    assert not service.is_loaded
    assert service.model_name == "test/medsiglip"


def test_device_selection():
    service = MedSigLIPService()
    torch = MagicMock()
    torch.cuda.is_available.return_value = False
    torch.backends.mps.is_available.return_value = True
    assert service._select_device(torch) == "mps"

    torch.backends.mps.is_available.return_value = False
    assert service._select_device(torch) == "cpu"

    torch.cuda.is_available.return_value = True
    assert service._select_device(torch) == "cuda"


def test_predictions_are_sorted_softmax():
    torch = pytest.importorskip("torch")

    service = MedSigLIPService(model_name="test/medsiglip")
    service.device = "cpu"
    service.processor = MagicMock(return_value=FakeInputs())
    outputs = MagicMock()
    outputs.logits_per_image = torch.tensor([[0.0, 2.0, 1.0]])
    service.model = MagicMock(return_value=outputs)

    results = service.get_predictions(Image.new("RGB", (448, 448)), ["a", "b", "c"])

    assert [r["label"] for r in results] == ["b", "c", "a"]
    assert sum(r["score"] for r in results) == pytest.approx(1.0)
    assert service.processor.call_args.kwargs["max_length"] == 64


def test_concurrent_cold_start_loads_once():
    service = MedSigLIPService(model_name="test/medsiglip")
    barrier = threading.Barrier(8)
    loads = []

    def slow_load():
        loads.append(threading.get_ident())
        time.sleep(0.05)
        service.processor = object()
        service.model = object()

    def worker():
        barrier.wait()
        service._load_model()
        return service.processor is not None

    with patch.object(service, "_load_weights", side_effect=slow_load):
        with ThreadPoolExecutor(max_workers=8) as pool:
            ready = list(pool.map(lambda _: worker(), range(8)))

    assert len(loads) == 1
    assert all(ready)
    assert service.is_loaded
