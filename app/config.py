"""
Configuration settings for the MedAIx scan analysis service.
Contains plausibility heuristics, confidence thresholds, model parameters and
environment-driven runtime settings.
"""
import os

from dotenv import load_dotenv

load_dotenv()


# --- Upload Validation ---

# Extensions accepted at upload time. DICOM is trusted without pixel analysis.
VALID_EXTENSIONS = (".dcm", ".dicom", ".jpg", ".jpeg", ".png", ".tiff", ".tif")
DICOM_EXTENSIONS = (".dcm", ".dicom")

# Medical scans are expected to be reasonably high resolution.
MIN_IMAGE_DIMENSION = 256


# --- Plausibility Classifier (Phase 1 / Phase 2) ---

# Phase 1 confidence at or above which an upload is accepted without warning.
PHASE1_ACCEPT_CONFIDENCE = 60

# Phase 1 confidence at or above which an upload is accepted with a yellow
# warning. Anything lower goes through the Phase 2 deep analysis.
PHASE1_WARNING_CONFIDENCE = 50

# Phase 2 confidence required to accept an inconclusive image (red warning).
PHASE2_ACCEPT_CONFIDENCE = 65

# Weights of the Phase 2 detectors. Rejection detectors subtract from the
# score, positive detectors add to it. The result is clamped to 0-100.
PHASE2_REJECTION_WEIGHTS = {
    "text_icon": 30,
    "screenshot": 25,
    "uniform_brightness": 20,
}
PHASE2_POSITIVE_WEIGHTS = {
    "bone_structure": 25,
    "cross_section": 20,
    "ultrasound_grain": 15,
    "grid_artifact": 20,
    "soft_tissue_gradient": 15,
}


# --- Confidence Gate ---

# Primary model confidence tiers (percent):
# - below LOW: high uncertainty, the analysis fails and the user is asked to retry.
# - LOW..MEDIUM: medium confidence, a secondary verification is blended in.
# - MEDIUM..HIGH: good confidence, accepted (yellow).
# - HIGH and above: high confidence, accepted (green).
CONFIDENCE_THRESHOLDS = {
    "LOW": 50,
    "MEDIUM": 70,
    "HIGH": 85,
}

# Blend of primary and secondary confidence in the verification tier.
PRIMARY_BLEND_WEIGHT = 0.4
SECONDARY_BLEND_WEIGHT = 0.6

# Image quality penalty applied to auto-failed analyses.
FAILED_QUALITY_PENALTY = 0.2

# Secondary confidence at which the verifier "confirms" the primary result.
SECONDARY_CONFIRMATION_CONFIDENCE = 75

ALGORITHM_VERSION = "v2.1.0"


# --- Model Configuration ---

# The target image resolution for MedSigLIP.
# Changing this requires a compatible model checkpoint.
MODEL_IMAGE_SIZE = (448, 448)

# The default HuggingFace model path for the primary model.
PRIMARY_MODEL_NAME = os.getenv("PRIMARY_MODEL_NAME", "google/medsiglip-448")

# Access token for the gated MedSigLIP checkpoint on HuggingFace.
HF_TOKEN = os.getenv("HF_TOKEN")

# Seconds to wait for the external model calls before failing the analysis.
PRIMARY_MODEL_TIMEOUT = float(os.getenv("PRIMARY_MODEL_TIMEOUT", "120"))
SECONDARY_VERIFIER_TIMEOUT = float(os.getenv("SECONDARY_VERIFIER_TIMEOUT", "120"))

PROCESSING_NODE = os.getenv("PROCESSING_NODE", "medaix-node-1")


# --- Storage ---

# "memory" keeps results for the lifetime of the process, "duckdb" persists them.
ANALYSIS_STORE = os.getenv("ANALYSIS_STORE", "memory")
DUCKDB_PATH = os.getenv("DUCKDB_PATH", "data/analyses.duckdb")
