"""
app/schemas/onboarding.py

Purpose: Onboarding questionnaire schema

- Known optional answer fields, extra keys preserved
- Default substitution for anything left blank
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

from utils.constants import ANSWER_DEFAULTS


class OnboardingAnswers(BaseModel):
    """
    Questionnaire answers submitted with the onboarding form.
    Unknown keys are kept and stored as the twin's brain data.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = None
    occupation: Optional[str] = None
    personality: Optional[str] = None
    voice_description: Optional[str] = Field(default=None, alias="voiceDescription")

    def profile(self) -> Dict[str, str]:
        """Known fields with blanks replaced by ANSWER_DEFAULTS."""
        return {
            field: (getattr(self, field) or "").strip() or default
            for field, default in ANSWER_DEFAULTS.items()
        }

    def raw(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
