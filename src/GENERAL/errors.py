class AppError(Exception):
    exit_code: int = 1
    log_message: str = "Ошибка приложения"


class ConfigError(AppError):
    log_message = "Ошибка в конфигурации"


class RepositoryStateError(AppError):
    log_message = "Каталог назначения не готов к публикации через git"


class GitCommandError(AppError):
    log_message = "Ошибка при выполнении команды git"


class TransportError(AppError):
    log_message = "Не удалось установить SSH/SFTP соединение"


class RemoteIOError(AppError):
    log_message = "Ошибка при работе с файлами на удалённом сервере"


class LocalIOError(AppError, OSError):
    log_message = "Ошибка доступа к локальным файлам/каталогам"


class UserAbend(AppError):
    exit_code = 130
    log_message = "Пользователь прекратил работу"


class ConfigLoadError(Exception):
    """
    Ошибка загрузки/разбора/валидации конфигурации.

    Используется как единый тип исключения для внешнего слоя приложения.
    """

    pass
