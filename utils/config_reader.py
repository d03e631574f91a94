import sys
from logging import Logger
from pathlib import Path

import yaml

"""
Config
Loads the exporter YAML (``envs`` + ``exports`` roots) from disk. A file that
is missing, unreadable or not a mapping ends the process: nothing can run
without it.
"""

REQUIRED_ROOTS = ("envs", "exports")


class ConfigReader:
    def __init__(self, log: Logger, configs_path: Path) -> None:
        """Initializes the reader with a config file path and a logger.

        :param configs_path: Path to the YAML file.
        :param log: Logger instance for logging messages.
        """
        self.configs_path = Path(configs_path)
        self.configs_data = None
        self.log = log

    def load_configurations(self) -> "ConfigReader":
        """Loads the YAML file into configs_data.

        :return: Self for fluent interface.
        :raises SystemExit: If the file is missing, unparsable or malformed.
        """
        try:
            self._check_path_exists()
            with open(self.configs_path, "rb") as configs_file:
                data = yaml.safe_load(configs_file)
        except FileNotFoundError as e:
            self.log.error("Issue loading file: %s" % (e))
            sys.exit(1)
        except (OSError, yaml.YAMLError) as e:
            self.log.error("Issue loading file '%s': %s" % (self.configs_path, e))
            sys.exit(1)

        if not isinstance(data, dict):
            data = {}
        missing = [r for r in REQUIRED_ROOTS if not isinstance(data.get(r), dict)]
        if missing:
            self.log.error(
                "Config '%s' must be a mapping with %s sections; missing %s"
                % (self.configs_path, ", ".join(REQUIRED_ROOTS), missing)
            )
            sys.exit(1)

        self.configs_data = data
        self.log.info("Configuration loaded from %s" % (self.configs_path))
        return self

    def _check_path_exists(self) -> None:
        """Checks the config file exists.

        :raises FileNotFoundError: If it does not.
        """
        if not self.configs_path.is_file():
            raise FileNotFoundError(
                "The file '%s' does not exist." % (self.configs_path)
            )
