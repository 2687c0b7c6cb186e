# Radiology finding labels for zero-shot classification with MedSigLIP.
# Rationale:
# 1. Baseline: "normal" must be present or every image is forced into a pathology.
# 2. Acute findings (fracture, pneumothorax, hemorrhage) drive urgency.
# 3. Common chronic findings keep the differential realistic and reduce false alarms.

RADIOLOGY_FINDING_LABELS = {
    # Baseline
    "Normal Study": "normal anatomical structures with no acute abnormality",

    # Acute
    "Fracture": "an acute bone fracture with a visible cortical break",
    "Pneumothorax": "a pneumothorax with a visible pleural line and absent lung markings",
    "Intracranial Hemorrhage": "an intracranial hemorrhage, a hyperdense collection of blood",

    # Parenchymal
    "Pneumonia": "pneumonia, a focal airspace consolidation of the lung",
    "Pleural Effusion": "a pleural effusion blunting the costophrenic angle",
    "Mass or Nodule": "a well-defined mass or nodule suspicious for neoplasm",
    "Cardiomegaly": "cardiomegaly, an enlarged cardiac silhouette",

    # Degenerative & Benign
    "Degenerative Change": "degenerative joint disease with joint space narrowing and osteophytes",
    "Benign Cyst": "a simple benign cyst with smooth walls and homogeneous content",
}

FINDING_SEVERITY = {
    "Normal Study": "normal",
    "Fracture": "severe",
    "Pneumothorax": "critical",
    "Intracranial Hemorrhage": "critical",
    "Pneumonia": "moderate",
    "Pleural Effusion": "moderate",
    "Mass or Nodule": "severe",
    "Cardiomegaly": "moderate",
    "Degenerative Change": "mild",
    "Benign Cyst": "mild",
}

FINDING_REGIONS = {
    "Fracture": "Skeletal",
    "Pneumothorax": "Thoracic",
    "Intracranial Hemorrhage": "Cranial",
    "Pneumonia": "Pulmonary",
    "Pleural Effusion": "Pleural",
    "Mass or Nodule": "Pulmonary",
    "Cardiomegaly": "Cardiac",
    "Degenerative Change": "Skeletal",
}

SEVERITY_URGENCY = {
    "normal": "routine",
    "mild": "routine",
    "moderate": "soon",
    "severe": "urgent",
    "critical": "emergent",
}

SEVERITY_RECOMMENDATIONS = {
    "normal": [
        "Routine follow-up recommended",
        "No immediate intervention required",
        "Clinical correlation advised",
    ],
    "mild": [
        "Routine follow-up recommended",
        "Clinical correlation advised",
    ],
    "moderate": [
        "Follow-up imaging recommended",
        "Clinical correlation advised",
    ],
    "severe": [
        "Prompt specialist review recommended",
        "Consider additional imaging",
    ],
    "critical": [
        "Immediate specialist review required",
        "Escalate per emergency protocol",
    ],
}

# Prompt templates per imaging modality. {} is replaced by the label description.
MODALITY_TEMPLATES = {
    "radiograph": "A radiograph showing {}.",
    "cross_section": "A CT or MRI slice showing {}.",
    "ultrasound": "An ultrasound image showing {}.",
}
