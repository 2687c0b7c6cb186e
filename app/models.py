import math
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def round_half_up(value: float) -> int:
    """Rounds halves up: 64.5 -> 65, where round() gives 64."""
    return int(math.floor(value + 0.5))


class ImageTypeLabel(str, Enum):
    UNKNOWN = "Unknown"
    XRAY = "X-ray"
    MRI_OR_CT = "MRI/CT Scan"
    ULTRASOUND = "Ultrasound"
    MEDICAL_SCAN = "Medical Scan"


class WarningType(str, Enum):
    YELLOW = "yellow"
    RED = "red"


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class Severity(str, Enum):
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


# --- Plausibility classifier ---

class FeatureVector(BaseModel):
    model_config = ConfigDict(frozen=True)

    grayscale_ratio: float
    dark_ratio: float
    contrast_ratio: float
    bright_ratio: float
    very_dark_ratio: float
    mid_tone_ratio: float
    width: int
    height: int


class Phase1Result(BaseModel):
    accepted: bool
    type_label: ImageTypeLabel = ImageTypeLabel.UNKNOWN
    confidence: int = Field(ge=0, le=100)
    needs_confirmation: bool = False
    message: str = ""


class Phase2Result(BaseModel):
    confidence: int = Field(ge=0, le=100)
    rejection_score: float = 0.0
    positive_score: float = 0.0
    detector_scores: Dict[str, float] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    is_valid: bool
    message: str
    detected_type: Optional[str] = None
    confidence: Optional[int] = None
    warning_type: Optional[WarningType] = None
    requires_confirmation: bool = False
    phase2_confidence: Optional[int] = None


# --- Analysis results ---

class Finding(BaseModel):
    description: str
    confidence: float  # percent
    region: str
    severity: Severity = Severity.NORMAL


class DifferentialDiagnosis(BaseModel):
    condition: str
    probability: float  # fraction 0-1


class SeverityAssessment(BaseModel):
    overall_severity: Severity = Severity.NORMAL
    affected_regions: List[str] = Field(default_factory=list)
    urgency_level: str = "routine"  # routine | soon | urgent | emergent
    recommended_actions: List[str] = Field(default_factory=list)


class RegionOfInterest(BaseModel):
    id: str
    # Normalized (0-1) coordinates relative to the image
    x: float
    y: float
    width: float
    height: float
    confidence: float  # percent
    description: str = ""


class QualityMetrics(BaseModel):
    image_quality: float = 0.0
    completeness: float = 0.0
    clarity: float = 0.0
    artifact_level: str = "none"  # none | minimal | moderate | significant


class SecondaryVerificationResult(BaseModel):
    performed: bool
    secondary_confidence: float
    method: str
    notes: str = ""
    original_confidence: Optional[float] = None
    final_confidence: Optional[float] = None


class PrimaryModelOutput(BaseModel):
    """What the external primary model hands to the confidence gate. Confidence is percent."""
    confidence: float
    findings: List[Finding] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    differential_diagnosis: List[DifferentialDiagnosis] = Field(default_factory=list)
    severity_assessment: SeverityAssessment = Field(default_factory=SeverityAssessment)
    regions_of_interest: List[RegionOfInterest] = Field(default_factory=list)
    quality_metrics: QualityMetrics = Field(default_factory=QualityMetrics)


class ThresholdTrace(BaseModel):
    primary: float = 0.0
    secondary: float = 0.0
    final: float = 0.0


class AnalysisMetadata(BaseModel):
    algorithm_version: str
    model_used: str
    processing_node: str = ""
    batch_id: str
    confidence_thresholds: ThresholdTrace = Field(default_factory=ThresholdTrace)


class AnalysisResult(BaseModel):
    id: str
    image_id: str
    status: AnalysisStatus
    confidence_score: float
    confidence_level: ConfidenceLevel
    findings: List[Finding] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    differential_diagnosis: List[DifferentialDiagnosis] = Field(default_factory=list)
    severity_assessment: SeverityAssessment = Field(default_factory=SeverityAssessment)
    regions_of_interest: List[RegionOfInterest] = Field(default_factory=list)
    quality_metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    secondary_verification: Optional[SecondaryVerificationResult] = None
    heatmap_url: Optional[str] = None
    processing_time_seconds: float = 0.0
    metadata: AnalysisMetadata


# --- API models ---

class HealthCheckResponse(BaseModel):
    status: str
    primary_model_loaded: bool


class UploadedFileResult(BaseModel):
    filename: str
    image_id: Optional[str] = None
    validation: ValidationResult


class UploadResponse(BaseModel):
    uploaded: int
    rejected: int
    ids: List[str]
    files: List[UploadedFileResult]
    message: str


class ImageStatusResponse(BaseModel):
    image_id: str
    status: AnalysisStatus


class AnalysisSummary(BaseModel):
    total: int
    completed: int
    success_rate: float
    average_confidence: float


class AnalysisListResponse(BaseModel):
    analyses: List[AnalysisResult]
    summary: AnalysisSummary
