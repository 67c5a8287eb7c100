"""
Configuración del sistema de elección de líder.
"""

# Configuración de elección de líder (segundos)
ELECTION_TIMEOUT = 3.0
COORDINATOR_TIMEOUT = 10.0
HEARTBEAT_INTERVAL = 4.0  # COORDINATOR_TIMEOUT debe ser > 2 * HEARTBEAT_INTERVAL
STARTUP_JITTER_MAX = 2.0

# Rango válido de identidades (el campo en el cable es de 2 bytes)
MAX_NODE_ID = 65535

# Configuración de red
NETWORK_MODE = "simulated"  # "simulated" o "http"
SIMULATED_LATENCY_MS = 10
SIMULATED_MAX_LATENCY_MS = 50
SIMULATED_PACKET_LOSS = 0.0
SIMULATED_DUPLICATE_RATE = 0.0

# Configuración HTTP
HTTP_TIMEOUT = 2.0  # segundos

# Configuración de logging
LOG_LEVEL = "INFO"  # DEBUG, INFO, WARNING, ERROR
LOG_FILE = None  # p.ej. "bully.log"

import logging
import sys


def setup_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE):
    """Configura logging con soporte UTF-8."""
    handler = logging.StreamHandler(sys.stdout)

    # Intentar configurar UTF-8, con fallback a ascii
    try:
        if hasattr(handler.stream, 'reconfigure'):
            handler.stream.reconfigure(encoding='utf-8', errors='replace')
    except (AttributeError, ValueError, OSError):
        pass

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
