"""
Identity Record Normalizers
Pure functions shaping provider responses into the portal's DNI/RUC format.

The provider has answered with both camelCase and snake_case keys, flat and
nested under ``data``. Each output field is resolved through an explicit
precedence list; missing values default to an empty string.
"""

from typing import Any, Optional

DNI_LENGTH = 8
RUC_LENGTH = 11


def is_valid_dni(value: Optional[str]) -> bool:
    return bool(value) and value.isdigit() and len(value) == DNI_LENGTH


def is_valid_ruc(value: Optional[str]) -> bool:
    return bool(value) and value.isdigit() and len(value) == RUC_LENGTH


def _unwrap(payload: dict[str, Any]) -> dict[str, Any]:
    nested = payload.get("data")
    return nested if isinstance(nested, dict) and nested else payload


def _first(record: dict[str, Any], *keys: str, default: Any = "") -> Any:
    """First truthy value among ``keys``, else ``default``."""
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return default


def _text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


# =============================================================================
# DNI
# =============================================================================

def normalize_dni(payload: dict[str, Any], requested_dni: str) -> dict[str, Any]:
    """
    Shape a DNI record.

    Args:
        payload: Raw provider response
        requested_dni: DNI from the request path, used when the record has none

    Returns:
        Normalized DNI record
    """
    d = _unwrap(payload)

    nombres = _first(d, "nombres", "nombres_completos", "nombres_completo")
    apellido_paterno = _first(d, "apellidoPaterno", "apellido_paterno")
    apellido_materno = _first(d, "apellidoMaterno", "apellido_materno")

    nombre_completo = _first(d, "nombreCompleto", "nombre_completo")
    if not nombre_completo and (apellido_paterno or apellido_materno or nombres):
        nombre_completo = f"{apellido_paterno} {apellido_materno}, {nombres}".strip()

    direccion = None
    direccion_completa = _first(d, "direccionCompleta", "direccion_completa", "direccion")
    if direccion_completa:
        direccion = {
            "departamento": _first(d, "departamento"),
            "provincia": _first(d, "provincia"),
            "distrito": _first(d, "distrito"),
            "direccionCompleta": direccion_completa,
        }

    return {
        "dni": _text(_first(d, "numero", "dni", default=requested_dni)),
        "nombres": nombres,
        "apellidoPaterno": apellido_paterno,
        "apellidoMaterno": apellido_materno,
        "nombreCompleto": nombre_completo,
        "fechaNacimiento": _first(d, "fechaNacimiento", "fecha_nacimiento"),
        "sexo": _first(d, "sexo", "genero"),
        "estadoCivil": _first(d, "estadoCivil", "estado_civil"),
        "ubigeoNacimiento": _first(d, "ubigeoNacimiento", "ubigeo_nacimiento", "ubigeo_reniec"),
        "lugarNacimiento": {
            "departamento": _first(d, "departamento", "departamentoNacimiento", "departamento_nacimiento"),
            "provincia": _first(d, "provincia", "provinciaNacimiento", "provincia_nacimiento"),
            "distrito": _first(d, "distrito", "distritoNacimiento", "distrito_nacimiento"),
        },
        "direccion": direccion,
        "restricciones": _first(d, "restricciones", default=[]),
        "votacion": _first(d, "votacion", default=None),
    }


def dni_summary(record: dict[str, Any]) -> dict[str, Any]:
    """Fields kept in the audit trail for a DNI lookup."""
    return {
        "dni": record["dni"],
        "nombreCompleto": record["nombreCompleto"],
        "sexo": record["sexo"],
        "fechaNacimiento": record["fechaNacimiento"],
    }


# =============================================================================
# RUC
# =============================================================================

def _ruc_address(d: dict[str, Any]) -> Optional[dict[str, Any]]:
    direccion_completa = _first(d, "direccionCompleta", "direccion_completa")
    if direccion_completa:
        ubigeo = _first(d, "ubigeoSunat", "ubigeo_sunat")
        if not ubigeo and isinstance(d.get("ubigeo"), list) and d["ubigeo"]:
            ubigeo = d["ubigeo"][-1]
        return {
            "direccionCompleta": direccion_completa,
            "departamento": _first(d, "departamento"),
            "provincia": _first(d, "provincia"),
            "distrito": _first(d, "distrito"),
            "ubigeo": ubigeo or "",
        }

    if d.get("direccion"):
        return {"direccion": d["direccion"]}

    return None


def _legal_representative(d: dict[str, Any]) -> Optional[dict[str, str]]:
    rep = _first(d, "representanteLegal", "representante_legal", default=None)
    if not isinstance(rep, dict):
        return None
    return {
        "tipoDocumento": _first(rep, "tipoDocumento", "tipo_documento"),
        "numeroDocumento": _first(rep, "numeroDocumento", "numero_documento"),
        "nombre": _first(rep, "nombre"),
    }


def _economic_activities(d: dict[str, Any]) -> list[dict[str, Any]]:
    activities = _first(d, "actividadesEconomicas", "actividades_economicas", default=[])
    if not isinstance(activities, list):
        return []

    shaped = []
    for activity in activities:
        if isinstance(activity, dict):
            shaped.append({
                "codigo": _first(activity, "codigo"),
                "descripcion": _first(activity, "descripcion"),
                "principal": bool(activity.get("principal")),
            })
        else:
            shaped.append({"codigo": "", "descripcion": _text(activity), "principal": False})
    return shaped


def _receipts(d: dict[str, Any]) -> list[dict[str, str]]:
    receipts = _first(d, "comprobantes", "comprobantesAutorizados", "comprobantes_autorizados", default=[])
    if not isinstance(receipts, list):
        return []
    return [
        {"codigo": _first(c, "codigo"), "descripcion": _first(c, "descripcion")}
        if isinstance(c, dict)
        else {"codigo": "", "descripcion": _text(c)}
        for c in receipts
    ]


def _registries(d: dict[str, Any]) -> list[dict[str, str]]:
    registries = _first(d, "padrones", default=[])
    if not isinstance(registries, list):
        return []
    return [
        {
            "codigo": _first(p, "codigo"),
            "descripcion": _first(p, "descripcion"),
            "desde": _first(p, "desde"),
            "hasta": _first(p, "hasta"),
        }
        for p in registries
        if isinstance(p, dict)
    ]


def normalize_ruc(payload: dict[str, Any], requested_ruc: str) -> dict[str, Any]:
    """
    Shape a RUC record.

    ``estado`` and ``condicion`` are lower-cased and ``ruc`` is always a
    string, even when the provider sends a number.
    """
    d = _unwrap(payload)

    return {
        "ruc": _text(_first(d, "numeroDocumento", "numero_documento", "numero", "ruc", default=requested_ruc)),
        "razonSocial": _first(d, "razonSocial", "razon_social", "nombre_o_razon_social"),
        "nombreComercial": _first(d, "nombreComercial", "nombre_comercial"),
        "estado": _text(_first(d, "estado")).lower(),
        "condicion": _text(_first(d, "condicion")).lower(),
        "tipoContribuyente": _first(d, "tipoContribuyente", "tipo_contribuyente"),
        "fechaInscripcion": _first(d, "fechaInscripcion", "fecha_inscripcion"),
        "fechaInicioActividades": _first(d, "fechaInicioActividades", "fecha_inicio_actividades"),
        "actividadEconomica": _first(d, "actividadEconomica", "actividad_economica"),
        "sistemaEmision": _first(d, "sistemaEmision", "sistema_emision"),
        "sistemaContabilidad": _first(d, "sistemaContabilidad", "sistema_contabilidad"),
        "direccion": _ruc_address(d),
        "representanteLegal": _legal_representative(d),
        "actividadesEconomicas": _economic_activities(d),
        "comprobantes": _receipts(d),
        "padrones": _registries(d),
    }


def ruc_summary(record: dict[str, Any]) -> dict[str, Any]:
    """Fields kept in the audit trail for a RUC lookup."""
    return {
        "ruc": record["ruc"],
        "razonSocial": record["razonSocial"],
        "estado": record["estado"],
        "condicion": record["condicion"],
    }
