from prefork.core.config.io import ReadResult, load_config
from prefork.core.config.models import CONFIG_ENV_VAR, PreforkConfig

__all__ = ["CONFIG_ENV_VAR", "PreforkConfig", "ReadResult", "load_config"]
