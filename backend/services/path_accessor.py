"""
Accès par chemin ("a.b.c") dans le document data_collection.

- get_value_by_path ne lève jamais d'exception: segment absent -> MISSING
- set_value_by_path retourne un NOUVEAU document (copie à chaque niveau
  traversé), l'original n'est jamais modifié
- les segments numériques ("0", "12") sont des clés texte, pas des index
"""

from typing import Any, Dict


class _Missing:
    """Sentinelle: chemin absent (différent de None stocké)"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING = _Missing()


def split_path(path: str) -> list:
    return path.split(".")


def get_value_by_path(document: Dict[str, Any], path: str, default: Any = MISSING) -> Any:
    """Lit la valeur au chemin donné, `default` dès qu'un segment manque"""
    current: Any = document
    for key in split_path(path):
        if not isinstance(current, dict):
            return default
        if key not in current:
            return default
        current = current[key]
    return current


def has_path(document: Dict[str, Any], path: str) -> bool:
    return get_value_by_path(document, path) is not MISSING


def set_value_by_path(document: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """
    Écrit `value` au chemin donné et retourne le nouveau document.

    Les conteneurs intermédiaires manquants sont créés ({}); une valeur
    non-dict sur le chemin (scalaire, liste) est écrasée par un dict.
    """
    keys = split_path(path)
    result = dict(document) if isinstance(document, dict) else {}
    current = result

    for key in keys[:-1]:
        child = current.get(key)
        current[key] = dict(child) if isinstance(child, dict) else {}
        current = current[key]

    current[keys[-1]] = value
    return result
