"""Модуль конфигурации.

Для доступа к настройкам используйте:
    from bongo.config.settings import settings

Для использования только классов настроек (без загрузки .env):
    from bongo.config.models import AWSSettings
"""

# Не импортируем settings здесь, чтобы тесты могли импортировать
# другие модули из bongo.config без загрузки .env файла.
# Для доступа к settings используйте прямой импорт:
#   from bongo.config.settings import settings
