import asyncio
import logging
from typing import List, Protocol

from app.config import SECONDARY_CONFIRMATION_CONFIDENCE
from app.models import SecondaryVerificationResult

logger = logging.getLogger(__name__)

CONFIRMED_NOTE = "Secondary verification confirms primary analysis with high confidence"
CAUTION_NOTE = "Secondary verification suggests caution - results should be reviewed by specialist"


class SecondaryVerifier(Protocol):
    async def verify(self, image_bytes: bytes) -> SecondaryVerificationResult:
        ...


class EnsembleSecondaryVerifier:
    """
    Independent second opinion for medium-confidence analyses: runs every member
    model concurrently and averages their confidences.
    Members follow the primary model interface (async analyze -> PrimaryModelOutput).
    """

    def __init__(self, members: List):
        if not members:
            raise ValueError("EnsembleSecondaryVerifier needs at least one member model")
        self.members = members

    @property
    def method(self) -> str:
        return "Ensemble (" + " + ".join(m.name for m in self.members) + ")"

    async def verify(self, image_bytes: bytes) -> SecondaryVerificationResult:
        outputs = await asyncio.gather(*(m.analyze(image_bytes) for m in self.members))
        confidence = round(sum(o.confidence for o in outputs) / len(outputs), 2)
        notes = CONFIRMED_NOTE if confidence >= SECONDARY_CONFIRMATION_CONFIDENCE else CAUTION_NOTE
        logger.info(f"Secondary verification: {confidence:.2f} from {len(outputs)} member(s)")
        return SecondaryVerificationResult(
            performed=True,
            secondary_confidence=confidence,
            method=self.method,
            notes=notes,
        )
