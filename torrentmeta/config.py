"""
Configuration settings for torrentmeta.
Loads configuration from .env file with fallback to defaults.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ===== Decoder Settings =====
MAX_DEPTH = int(os.getenv('TORRENTMETA_MAX_DEPTH', '512'))

# ===== Output Settings =====
JSON_INDENT = int(os.getenv('JSON_INDENT', '2'))

# ===== Application Settings =====
DEBUG = os.getenv('DEBUG', 'False').lower() in ('true', '1', 't')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO' if not DEBUG else 'DEBUG')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
