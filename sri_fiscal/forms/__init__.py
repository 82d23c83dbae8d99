"""Declaration form schemas loaded from ``config/forms``."""

from sri_fiscal.forms.schema import (
    FormRow,
    FormSection,
    FormStructure,
    available_forms,
    find_conflicting_codes,
    iter_field_codes,
    load_form_structure,
)

__all__ = [
    "FormRow",
    "FormSection",
    "FormStructure",
    "available_forms",
    "find_conflicting_codes",
    "iter_field_codes",
    "load_form_structure",
]
