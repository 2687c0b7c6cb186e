import logging
import threading
from typing import Dict, List

from PIL import Image

from app.config import HF_TOKEN, PRIMARY_MODEL_NAME

logger = logging.getLogger(__name__)


class MedSigLIPService:
    def __init__(self, model_name=PRIMARY_MODEL_NAME):
        # Lazy load: torch and the checkpoint are only pulled in on first inference
        self.model_name = model_name
        self.processor = None
        self.model = None
        self.device = None
        # Inference runs in worker threads; only one of them may load the checkpoint
        self._load_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    def _select_device(self, torch) -> str:
        if torch.cuda.is_available():
            return "cuda"
        if torch.backends.mps.is_available():
            return "mps"
        return "cpu"

    def _load_model(self):
        if self.model is not None:
            return
        with self._load_lock:
            if self.model is None:
                self._load_weights()

    def _load_weights(self):
        import torch
        from transformers import AutoModel, AutoProcessor

        self.device = self._select_device(torch)
        logger.info(f"Loading MedSigLIP model: {self.model_name} on {self.device}...")
        try:
            self.processor = AutoProcessor.from_pretrained(self.model_name, token=HF_TOKEN)
            # Assigned last: a non-None model means the processor is ready too
            self.model = AutoModel.from_pretrained(self.model_name, token=HF_TOKEN).to(self.device)
            logger.info("MedSigLIP model loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load MedSigLIP model: {e}")
            raise

    def get_predictions(self, image: Image.Image, texts: List[str]) -> List[Dict]:
        """
        Zero-shot classification: softmax over image-text similarities.
        Returns [{"label": text, "score": p}] sorted by score descending.
        """
        self._load_model()
        import torch

        try:
            # 64-token limit of the text tower
            inputs = self.processor(
                text=texts,
                images=image,
                padding="max_length",
                max_length=64,
                truncation=True,
                return_tensors="pt",
            ).to(self.device)

            with torch.no_grad():
                outputs = self.model(**inputs)

            probs = outputs.logits_per_image.softmax(dim=1)[0].tolist()
            results = [{"label": text, "score": probs[i]} for i, text in enumerate(texts)]
            results.sort(key=lambda x: x["score"], reverse=True)
            return results
        except Exception as e:
            logger.error(f"MedSigLIP inference failed: {e}")
            raise


# Global instance
medsiglip_service = MedSigLIPService()
