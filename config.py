# config.py
import os
import ssl
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

def get_store_backend() -> str:
    """Return which spatial store backs the service ("postgres" or "memory")."""
    backend = os.getenv('STORE_BACKEND', 'postgres').strip().lower()
    if backend not in ('postgres', 'memory'):
        raise Exception(f"Unsupported STORE_BACKEND: {backend}")
    return backend

def get_db_config():
    """Return database configuration from environment variables."""
    return {
        'host': os.getenv('DB_HOST'),
        'port': int(os.getenv('DB_PORT', 5432)),
        'database': os.getenv('DB_NAME'),
        'user': os.getenv('DB_USER'),
        'password': os.getenv('DB_PASSWORD')
    }

def get_ssl_context() -> Optional[ssl.SSLContext]:
    """Create and return SSL context for database connections, if a CA cert is configured."""
    ca_cert_content = os.getenv('DB_CA_CERT')
    if not ca_cert_content:
        return None

    ssl_context = ssl.create_default_context(cadata=ca_cert_content)
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE

    return ssl_context

def get_nearby_policy():
    """Radius, result cap and message length limit for proximity queries."""
    return {
        'radius_meters': float(os.getenv('NEARBY_RADIUS_METERS', 200)),
        'limit': int(os.getenv('NEARBY_LIMIT', 100)),
        'max_message_length': int(os.getenv('MAX_MESSAGE_LENGTH', 4096))
    }

def get_grid_cell_degrees() -> float:
    """Cell size of the in-memory spatial grid, in degrees."""
    cell = float(os.getenv('GRID_CELL_DEGREES', 0.01))
    if cell <= 0:
        raise Exception("GRID_CELL_DEGREES must be positive")
    return cell

def get_log_level() -> str:
    return os.getenv('LOG_LEVEL', 'INFO').upper()

def get_log_file() -> Optional[str]:
    return os.getenv('LOG_FILE') or None
