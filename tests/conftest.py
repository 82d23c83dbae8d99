"""Pytest configuration for sri_fiscal tests.

This module provides:
- Builders for linearized declaration text (Formulario 104/103)
- Builders for ATS XML annexes
- Small description catalogs so ATS tests do not depend on config files
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")

DeclarationBuilder = Callable[..., str]
AtsBuilder = Callable[..., str]


def build_declaration_text(
    period: str | None = "MARZO 2024",
    fields: dict[str, str] | None = None,
    taxpayer_id: str | None = "1790012345001",
    legal_name: str | None = "COMERCIAL ANDINA CIA LTDA",
    declaration_type: str | None = "ORIGINAL",
) -> str:
    """Render declaration text the way a linearized SRI PDF reads."""
    lines = ["SERVICIO DE RENTAS INTERNAS", "DECLARACIÓN DEL IMPUESTO AL VALOR AGREGADO"]
    if period:
        lines.append(f"PERÍODO FISCAL {period}")
    if declaration_type:
        lines.append(f"TIPO DE DECLARACIÓN {declaration_type}")
    if taxpayer_id:
        lines.append(f"IDENTIFICACIÓN DEL SUJETO PASIVO {taxpayer_id}")
    if legal_name:
        lines.append(f"RAZÓN SOCIAL O APELLIDOS Y NOMBRES COMPLETOS {legal_name}")
    lines.append("RESUMEN DE VENTAS Y OTRAS OPERACIONES DEL PERÍODO QUE DECLARA")
    for code, value in (fields or {}).items():
        lines.append(f"Casillero {code} {value}")
    return "\n".join(lines) + "\n"


def build_ats_xml(
    mes: str | None = "03",
    anio: str = "2024",
    compras: list[dict[str, Any]] | None = None,
    ruc: str = "1790012345001",
    razon_social: str = "COMERCIAL ANDINA CIA LTDA",
) -> str:
    """Render an ATS annex with one ``detalleCompras`` per purchase dict.

    Purchase dict keys are ATS element names; ``air`` holds a list of
    ``detalleAir`` dicts.
    """
    parts = [
        "<iva>",
        "<TipoIDInformante>R</TipoIDInformante>",
        f"<IdInformante>{ruc}</IdInformante>",
        f"<razonSocial>{razon_social}</razonSocial>",
        f"<Anio>{anio}</Anio>",
    ]
    if mes is not None:
        parts.append(f"<Mes>{mes}</Mes>")
    parts.append("<compras>")
    for compra in compras or []:
        parts.append("<detalleCompras>")
        for tag, value in compra.items():
            if tag == "air":
                continue
            parts.append(f"<{tag}>{value}</{tag}>")
        if compra.get("air"):
            parts.append("<air>")
            for air in compra["air"]:
                parts.append("<detalleAir>")
                parts.extend(f"<{tag}>{value}</{tag}>" for tag, value in air.items())
                parts.append("</detalleAir>")
            parts.append("</air>")
        parts.append("</detalleCompras>")
    parts.append("</compras>")
    parts.append("</iva>")
    return "\n".join(parts)


@pytest.fixture
def make_declaration() -> DeclarationBuilder:
    """Builder for linearized declaration text."""
    return build_declaration_text


@pytest.fixture
def make_ats() -> AtsBuilder:
    """Builder for ATS XML text."""
    return build_ats_xml


@pytest.fixture
def document_types() -> dict[str, str]:
    return {"01": "FACTURA", "03": "LIQUIDACIÓN DE COMPRA", "04": "NOTA DE CRÉDITO"}


@pytest.fixture
def retention_codes() -> dict[str, str]:
    return {"312": "Transferencia de bienes muebles", "332": "Pagos no sujetos a retención"}
