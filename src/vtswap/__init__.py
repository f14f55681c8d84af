"""VtSwap: multi-threshold-voltage leakage recovery for gate-level designs"""

import logging

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("vtswap")
except (ImportError, PackageNotFoundError):
    __version__ = "0.0.0"

# Silent unless the application configures logging (see log_utils.setup_logging)
logging.getLogger(__name__).addHandler(logging.NullHandler())
