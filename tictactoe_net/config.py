import os
from dataclasses import dataclass, field

@dataclass
class ServerConfig:
    host: str = field(default_factory=lambda: os.environ.get("TTT_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.environ.get("TTT_PORT", "7000")))
    # seconds a peer gets to answer the name prompt before the default is used
    name_timeout: float = field(default_factory=lambda: float(os.environ.get("TTT_NAME_TIMEOUT", "60")))
    # upper bound on a single blocked socket write
    write_timeout: float = field(default_factory=lambda: float(os.environ.get("TTT_WRITE_TIMEOUT", "5")))
    once: bool = False
    log_level: str = field(default_factory=lambda: os.environ.get("TTT_LOG_LEVEL", "INFO"))
