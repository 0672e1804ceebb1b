"""Pydantic models for triage reference data and catalog files.

These models mirror the YAML files under ``v1/``:

  Constants (from v1/const/):
    - EsiLevel: one ESI level with its display label and patient message

  Catalogs (from v1/catalogs/):
    - CatalogDocument: a questionnaire header plus its ordered questions
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from triage_engine.constants import ESI_MAX, ESI_MIN
from triage_engine.models.question import Question


class EsiLevel(BaseModel):
    """Emergency Severity Index level from esi_levels.yaml.

    The 5 levels are: 1 Immediate, 2 Emergent, 3 Urgent, 4 Less Urgent,
    5 Non-Urgent.
    """

    level: int = Field(ge=ESI_MIN, le=ESI_MAX)
    label: str
    description: str
    # Message shown to the patient once their assessment completes
    patient_message: str
    color: Optional[str] = None


class CatalogDocument(BaseModel):
    """Top-level structure of a catalog YAML file.

    ``policy`` names the classifier the questions were written for; the
    engine refuses to pair a catalog with any other classifier.
    """

    name: str
    title: str
    policy: str
    description: Optional[str] = None
    questions: List[Question]
