"""
Production wiring of the analysis pipeline. Routers receive these through
FastAPI dependencies so tests can swap in their own repository and models.
"""
import logging

from app.config import ANALYSIS_STORE, DUCKDB_PATH, PRIMARY_MODEL_NAME
from app.dal.analysis_repo import InMemoryAnalysisRepository
from app.services.analysis_pipeline import AnalysisPipeline
from app.services.confidence_gate import ConfidenceGate
from app.services.image_validator import ImageValidator, image_validator
from app.services.medsiglip_service import medsiglip_service
from app.services.primary_model import ZeroShotPrimaryModel
from app.services.secondary_verifier import EnsembleSecondaryVerifier

logger = logging.getLogger(__name__)


def build_repository():
    if ANALYSIS_STORE == "duckdb":
        from app.dal.database import DuckDBAnalysisRepository
        logger.info(f"Using DuckDB analysis store at {DUCKDB_PATH}")
        return DuckDBAnalysisRepository(DUCKDB_PATH)
    return InMemoryAnalysisRepository()


def build_pipeline(repository) -> AnalysisPipeline:
    primary_model = ZeroShotPrimaryModel(medsiglip_service, modality="radiograph")
    # Second opinion from the same checkpoint prompted as other modalities
    verifier = EnsembleSecondaryVerifier([
        ZeroShotPrimaryModel(medsiglip_service, modality="cross_section"),
        ZeroShotPrimaryModel(medsiglip_service, modality="ultrasound"),
    ])
    gate = ConfidenceGate(verifier, model_used=PRIMARY_MODEL_NAME)
    return AnalysisPipeline(repository, primary_model, gate)


analysis_repo = build_repository()
analysis_pipeline = build_pipeline(analysis_repo)


def get_repository():
    return analysis_repo


def get_pipeline() -> AnalysisPipeline:
    return analysis_pipeline


def get_validator() -> ImageValidator:
    return image_validator
