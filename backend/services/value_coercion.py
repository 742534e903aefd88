"""
Conversion des saisies brutes (formulaire / JSON) vers les valeurs stockées.

Aucune fonction ici ne lève d'exception pour une saisie mal formée:
une valeur inexploitable devient None ("" pour le texte).
"""

import math
from typing import Any, List, Optional

from config import parse_brl
from services.path_accessor import MISSING


TRUE_STRINGS = {"true", "1", "sim", "s", "yes", "on"}
FALSE_STRINGS = {"false", "0", "nao", "não", "n", "no", "off", ""}


def coerce_text(raw: Any) -> str:
    if raw is None or raw is MISSING:
        return ""
    if isinstance(raw, str):
        return raw
    return str(raw)


def coerce_number(raw: Any) -> Optional[float]:
    """Nombre ou None si vide / non numérique (jamais NaN)"""
    if raw is None or raw is MISSING or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw if math.isfinite(raw) else None
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text.replace(",", "."))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def coerce_currency(raw: Any) -> Optional[float]:
    value = parse_brl(raw)
    if value is None or not math.isfinite(value):
        return None
    return value


def coerce_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None or raw is MISSING:
        return False
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    return bool(raw)


def coerce_string_list(raw: Any) -> List[str]:
    """Liste de chaînes sans doublons, ordre de sélection conservé"""
    if raw is None or raw is MISSING:
        return []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return []
    result = []
    for item in raw:
        text = coerce_text(item)
        if text and text not in result:
            result.append(text)
    return result


def to_number(value: Any) -> float:
    """Pour les sommes: tout ce qui n'est pas un nombre compte 0"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def is_value_filled(value: Any) -> bool:
    """Champ obligatoire rempli: ni absent, ni None, ni "", ni liste vide"""
    if value is MISSING or value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return False
    return True


ITEM_COERCERS = {
    "text": coerce_text,
    "date": coerce_text,
    "select": coerce_text,
    "number": coerce_number,
    "currency": coerce_currency,
    "boolean": coerce_bool,
}


def coerce_item_value(item_type: str, raw: Any) -> Any:
    """Conversion d'un sous-champ d'item de liste selon itemSchema"""
    coercer = ITEM_COERCERS.get(item_type, coerce_text)
    return coercer(raw)
