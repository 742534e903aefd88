"""
Configuration et utilitaires partagés
"""

import os
import re
import uuid
from datetime import datetime, timezone
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'test_database')  # Default to test_database

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# Coleta de dados
AUTOSAVE_DELAY_SECONDS = float(os.environ.get('AUTOSAVE_DELAY_SECONDS', '10'))
DEFAULT_SCHEMA_ID = os.environ.get('DATA_COLLECTION_SCHEMA_ID', 'a0000000-0000-0000-0000-000000000001')
SCHEDULER_TIMEZONE = os.environ.get('SCHEDULER_TIMEZONE', 'America/Sao_Paulo')
CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]


# ==================== HELPERS ====================

def generate_id() -> str:
    """Génère un identifiant de document (uuid4)"""
    return str(uuid.uuid4())

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()


def parse_brl(raw) -> Optional[float]:
    """
    Convertit une saisie monétaire pt-BR en nombre.

    Pipeline:
      1. None / chaîne vide -> None
      2. int/float passent tels quels (bool refusé)
      3. "1.234,56" / "R$ 1.234,56" -> 1234.56
      4. "1234.56" (point décimal seul) -> 1234.56

    Returns: float, ou None si la saisie n'est pas un nombre (jamais NaN)
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if raw != raw:  # NaN
            return None
        return float(raw)
    if not isinstance(raw, str):
        return None

    text = raw.replace("R$", "").replace("\u00a0", "").replace(" ", "").strip()
    if not text:
        return None

    negative = text.startswith("-")
    text = text.lstrip("-")

    if "," in text:
        # Format brésilien: points = milliers, virgule = décimales
        text = text.replace(".", "").replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    if not re.fullmatch(r"\d+(\.\d+)?|\.\d+", text):
        return None

    value = float(text)
    return -value if negative else value


def format_brl(value) -> str:
    """Formate un nombre en pt-BR: 1234.5 -> '1.234,50' ('' si absent)"""
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return ""
    formatted = f"{value:,.2f}"
    return formatted.replace(",", "X").replace(".", ",").replace("X", ".")
