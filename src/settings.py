"""
Глобальные настройки pipe2cloud.

Значения по умолчанию можно переопределить переменными окружения
с префиксом PIPE2CLOUD_.
"""
import os

LOGO = r"""
       _            ___        _                 _
 _ __ (_)_ __  ___ |_  )  __  | | ___  _  _   __| |
| '_ \| | '_ \/ -_) / /  / _| | |/ _ \| || | / _` |
| .__/|_| .__/\___|/___| \__| |_|\___/ \_,_| \__,_|
|_|     |_|
"""

ENV_PREFIX = "PIPE2CLOUD_"
VAR_ENV_PREFIX = ENV_PREFIX + "VAR_"

DEFAULT_BUILD_TIMEOUT = int(os.getenv(ENV_PREFIX + "BUILD_TIMEOUT", "10"))
DEFAULT_ACCOUNT_ID = os.getenv(ENV_PREFIX + "ACCOUNT_ID", "000000000000")
DEFAULT_STATE_KEY = "terraform.tfstate"

SENSITIVE_MASK = "****"
