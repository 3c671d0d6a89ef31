"""Константы приложения."""

import os
from pathlib import Path

# ==============================================================================
# ПУТИ К ФАЙЛАМ И ДИРЕКТОРИЯМ
# ==============================================================================

# Корень проекта (где лежит pyproject.toml)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Каталог моделей, стоимость генераций и маршрутизация провайдера
CONFIG_FILE = PROJECT_ROOT / "config.yaml"

# Папка для данных (база, логи).
#
# В контейнере обычно монтируется персистентный том, тогда путь задаётся
# через BONGO_DATA_DIR (например, /data). Локально: ./data в корне проекта.
# Директория создаётся лениво (при настройке логов и подключении к БД).
DATA_DIR = Path(os.environ.get("BONGO_DATA_DIR", str(PROJECT_ROOT / "data")))
