"""Triage constants shared across the SDK.

These values are referenced by the classifiers, the assessment engine, the
queue repository, and the queue view model.  They mirror conventions encoded
in the YAML rulesets under ``v1/``.

Thresholds that deployments may want to tune without code changes can be
overridden via environment variables.
"""

import os

# ESI bounds: 1 is the most urgent level.
ESI_MIN = 1
ESI_MAX = 5

# Patients at or below this ESI count as critical in queue statistics.
CRITICAL_ESI_MAX = int(os.getenv("CRITICAL_ESI_MAX", "2"))

# Policy A: patients at or above this age land in ESI 3 at minimum.
# Overridable via GERIATRIC_AGE_THRESHOLD env var.
GERIATRIC_AGE_THRESHOLD = int(os.getenv("GERIATRIC_AGE_THRESHOLD", "65"))

# Patient id format: "P" + zero-padded sequence number ("P001", "P042", "P1000").
PATIENT_ID_PREFIX = "P"
PATIENT_ID_WIDTH = 3
PATIENT_ID_PATTERN = r"^P\d{3,}$"

# Chief complaint recorded when the patient self-assesses without one.
DEFAULT_CHIEF_COMPLAINT = "Self-assessed symptoms"

# Catalog used when no TRIAGE_CATALOG is configured.
DEFAULT_CATALOG = os.getenv("TRIAGE_CATALOG", "vitals")

# Section names a catalog may group questions under.  Grouping is cosmetic
# and never consulted by a classifier.
SECTION_NAMES: dict[str, str] = {
    "patient_info": "Patient Information",
    "clinical": "Clinical Assessment",
    "accessibility": "Accessibility Needs",
}

# yes_no answers are stored and compared as these literal strings.
YES = "yes"
NO = "no"
