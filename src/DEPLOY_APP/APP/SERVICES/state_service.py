from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from DEPLOY_APP.APP.dto import DeployState


class StateService:
    """
    Хранит состояние последней успешной публикации в YAML-файле.

    Формат файла:
        build_count: 3
        files:
          - css/main.css
          - index.html

    Примечания:
        - Логика не “блокирующая”: если файл состояния не читается или повреждён,
          load() возвращает None (следующая публикация будет полной), ситуация логируется.
        - Ошибка записи тоже только логируется.
    """

    def __init__(self, state_file: Path) -> None:
        self.state_file = state_file

    def load(self) -> DeployState | None:
        try:
            raw_text = self.state_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("Файл состояния {} не найден: публикация будет полной", self.state_file)
            return None
        except OSError as e:
            logger.warning(
                "Не смогли прочитать файл состояния {}\n{}\nВыполняем полную публикацию",
                self.state_file,
                e,
            )
            return None

        try:
            return self._parse(yaml.safe_load(raw_text))
        except (yaml.YAMLError, ValueError) as e:
            logger.warning(
                "Файл состояния {} повреждён\n{}\nВыполняем полную публикацию",
                self.state_file,
                e,
            )
            return None

    def save(self, state: DeployState) -> None:
        data = {"build_count": state.build_count, "files": list(state.files)}
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(
                yaml.safe_dump(data, allow_unicode=True, sort_keys=False),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error("Не смогли записать файл состояния {}\n{}", self.state_file, e)

    @staticmethod
    def _parse(data: Any) -> DeployState:
        if not isinstance(data, dict):
            raise ValueError("ожидался словарь с ключами build_count и files")

        build_count = data.get("build_count")
        files = data.get("files") or []
        if not isinstance(build_count, int) or build_count < 0:
            raise ValueError(f"некорректный build_count: {build_count!r}")
        if not isinstance(files, list) or not all(isinstance(x, str) for x in files):
            raise ValueError("files должен быть списком строк")

        return DeployState(build_count=build_count, files=files)
