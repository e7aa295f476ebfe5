"""Reference-tag ("shortcode") vocabulary.

Shortcodes tag an answer for downstream clinical/backend mapping. The engine
only carries them through to the persistence collaborator; the validator
checks flows against this table so a typo surfaces at registration time.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

ShortcodeType = Literal["string", "number", "boolean", "string[]", "date"]
ShortcodeCategory = Literal["demographics", "medical", "lifestyle", "goals", "system"]


@dataclass(slots=True, frozen=True)
class ShortcodeDefinition:
    description: str
    type: ShortcodeType
    category: ShortcodeCategory


def _d(description: str, type_: ShortcodeType, category: ShortcodeCategory) -> ShortcodeDefinition:
    return ShortcodeDefinition(description=description, type=type_, category=category)


SHORTCODES: MappingProxyType[str, ShortcodeDefinition] = MappingProxyType(
    {
        # System
        "_welcome": _d("Welcome screen shown", "string", "system"),
        # Demographics
        "patient_age": _d("Patient age in years", "number", "demographics"),
        "patient_sex": _d("Patient biological sex (male/female)", "string", "demographics"),
        "patient_dob": _d("Patient date of birth", "date", "demographics"),
        "patient_email": _d("Patient email address", "string", "demographics"),
        "patient_country": _d("Patient country of residence", "string", "demographics"),
        "full_name": _d("Patient full legal name", "string", "demographics"),
        # Medical
        "current_weight_kg": _d("Current weight in kilograms", "number", "medical"),
        "height_cm": _d("Height in centimeters", "number", "medical"),
        "medical_conditions": _d("List of existing medical conditions", "string[]", "medical"),
        "current_medications": _d("List of current medications", "string[]", "medical"),
        "allergies": _d("Known allergies", "string[]", "medical"),
        "pregnancy_status": _d("Current pregnancy or planning status", "string", "medical"),
        "breastfeeding": _d("Currently breastfeeding", "boolean", "medical"),
        # Goals
        "weight_loss_goal": _d("Primary weight loss goal", "string", "goals"),
        "motivation_factors": _d("Factors motivating weight loss", "string[]", "goals"),
        "target_weight_kg": _d("Target weight in kilograms", "number", "goals"),
        # Lifestyle
        "exercise_frequency": _d("How often patient exercises", "string", "lifestyle"),
        "diet_type": _d("Current diet type or restrictions", "string", "lifestyle"),
        "sleep_hours": _d("Average hours of sleep per night", "number", "lifestyle"),
        "alcohol_consumption": _d("Alcohol consumption frequency", "string", "lifestyle"),
        "smoking_status": _d("Smoking status", "string", "lifestyle"),
        "lifestyle_activity": _d(
            "Current activity level (sedentary, light, moderate, very)", "string", "lifestyle"
        ),
        "previous_diets": _d("Previous weight loss approaches tried", "string[]", "lifestyle"),
        # Dermatology
        "primary_skin_concern": _d(
            "Primary skin concern (acne, aging, pigmentation, etc.)", "string", "medical"
        ),
        "acne_severity": _d(
            "Severity of acne (mild, moderate, severe, cystic)", "string", "medical"
        ),
        "aging_concerns": _d(
            "Specific aging concerns (fine lines, wrinkles, sagging)", "string[]", "medical"
        ),
        "skin_type": _d(
            "Skin type (oily, dry, combination, normal, sensitive)", "string", "medical"
        ),
        "current_skincare_routine": _d("Level of current skincare routine", "string", "lifestyle"),
        "skin_allergies": _d("Whether patient has known skincare allergies", "string", "medical"),
        "allergy_details": _d("Details of known allergies", "string", "medical"),
    }
)


def is_valid_shortcode(shortcode: str) -> bool:
    return shortcode in SHORTCODES


def get_shortcode_definition(shortcode: str) -> ShortcodeDefinition | None:
    return SHORTCODES.get(shortcode)


def shortcodes_by_category(category: ShortcodeCategory) -> list[str]:
    """Get all shortcodes in a category, in declaration order."""
    return [key for key, definition in SHORTCODES.items() if definition.category == category]
