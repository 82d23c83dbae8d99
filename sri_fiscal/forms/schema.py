"""Read-only declaration form schemas (Formulario 104 and 103).

Each schema lists the form's sections; each section lists rows; each row maps
its value slots (gross/net/tax for 104, base/retained for 103) to field codes.

Configuration files:
- config/config.json ``forms``: registry of form number -> schema file
- config/forms/form104.json: VAT return
- config/forms/form103.json: income-tax withholding return
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, cast

from sri_fiscal.config import CONFIG_DIR, get_forms_registry, setup_logging

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = setup_logging(__name__)

ROW = "row"
TOTAL = "total"
GROUP = "group"
TITLE = "title"


# =============================================================================
# Schema Config Loading
# =============================================================================


def _load_form_config(filename: str) -> dict[str, Any]:
    """Load a form schema file relative to the config directory.

    Raises
    ------
    FileNotFoundError
        If the schema file cannot be located.
    """
    config_path = CONFIG_DIR / filename
    if not config_path.exists():
        msg = f"Form schema not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open(encoding="utf-8") as f:
        return cast("dict[str, Any]", json.load(f))


@dataclass(frozen=True)
class FormRow:
    description: str
    fields: tuple[str | None, ...] = ()
    kind: str = ROW
    note: str | None = None

    @property
    def codes(self) -> list[str]:
        return [code for code in self.fields if code]

    @property
    def is_total(self) -> bool:
        return self.kind == TOTAL

    @property
    def is_heading(self) -> bool:
        return self.kind in {GROUP, TITLE}


@dataclass(frozen=True)
class FormSection:
    title: str
    range: str
    rows: tuple[FormRow, ...] = ()


@dataclass(frozen=True)
class FormStructure:
    """A declaration form's layout.

    Attributes
    ----------
        form: Form number (``"104"``)
        title: Official form title
        slots: Value slot names, one per row field position
        sections: Sections in form order
        required_prefixes: Code prefixes expected in a relevant document
            (empty when the form defines no relevance check)
        min_fields: Field count that makes a document relevant regardless
    """

    form: str
    title: str
    slots: tuple[str, ...]
    sections: tuple[FormSection, ...] = field(default_factory=tuple)
    required_prefixes: tuple[str, ...] = ()
    min_fields: int = 5

    def slot_index(self, slot: str) -> int:
        if slot not in self.slots:
            msg = f"Form {self.form} has no slot {slot!r} (slots: {', '.join(self.slots)})"
            raise KeyError(msg)
        return self.slots.index(slot)


def _parse_structure(data: dict[str, Any]) -> FormStructure:
    slots = tuple(data.get("slots", []))
    sections = []
    for section in data.get("sections", []):
        rows = tuple(
            FormRow(
                description=row["description"],
                # Pad so every row has one entry per slot
                fields=tuple(row.get("fields", [])) + (None,) * (len(slots) - len(row.get("fields", []))),
                kind=row.get("kind", ROW),
                note=row.get("note"),
            )
            for row in section.get("rows", [])
        )
        sections.append(FormSection(section["title"], str(section.get("range", "")), rows))

    relevance = data.get("relevance", {})
    return FormStructure(
        form=str(data["form"]),
        title=data.get("title", ""),
        slots=slots,
        sections=tuple(sections),
        required_prefixes=tuple(relevance.get("code_prefixes", [])),
        min_fields=int(relevance.get("min_fields", 5)),
    )


def available_forms() -> list[str]:
    return sorted(get_forms_registry())


def load_form_structure(name: str) -> FormStructure:
    """Load a registered form schema.

    Parameters
    ----------
    name
        Form number as registered in ``config.json`` (``"104"``, ``"103"``).

    Returns
    -------
    FormStructure
        Parsed, immutable schema.

    Raises
    ------
    KeyError
        If the form is not registered.
    FileNotFoundError
        If the registered schema file is missing.
    """
    registry = get_forms_registry()
    if name not in registry:
        msg = f"Unknown form {name!r}; registered: {', '.join(sorted(registry))}"
        raise KeyError(msg)

    structure = _parse_structure(_load_form_config(registry[name]["file"]))
    logger.debug("Loaded form %s: %d sections", structure.form, len(structure.sections))
    return structure


def iter_field_codes(form: FormStructure) -> Iterator[tuple[str, FormSection, FormRow, str]]:
    """Yield ``(code, section, row, slot)`` for every code in the form."""
    for section in form.sections:
        for row in section.rows:
            for slot, code in zip(form.slots, row.fields, strict=False):
                if code:
                    yield code, section, row, slot


def find_conflicting_codes(form: FormStructure) -> dict[str, list[str]]:
    """Return codes that appear in more than one place of the form.

    A field code must mean one thing within a schema; an empty result means
    the schema is consistent.

    Returns
    -------
    dict[str, list[str]]
        Conflicting code -> ``"<section> / <row>"`` locations.
    """
    locations: dict[str, list[str]] = {}
    for code, section, row, slot in iter_field_codes(form):
        locations.setdefault(code, []).append(f"{section.title} / {row.description} [{slot}]")

    conflicts = {code: places for code, places in locations.items() if len(places) > 1}
    for code, places in conflicts.items():
        logger.warning("Form %s: code %s used %d times: %s", form.form, code, len(places), "; ".join(places))
    return conflicts
