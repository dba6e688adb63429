import configparser
import os
import time
from typing import Final, Optional

FILE_SIZE_LIMIT: Final[int] = 104857600  # 100Mb


class TNEFHuntConfigSingleton:
    search_dir: str
    search_file: Optional[str]
    config_file: str = 'tnefhunt.ini'
    output_file: str
    extract_dir: Optional[str]
    search_extensions: list[str]
    show_warnings: bool
    max_file_size: int

    # Here is the core of the singleton
    __instance: Optional['TNEFHuntConfigSingleton'] = None

    @staticmethod
    def instance() -> "TNEFHuntConfigSingleton":
        """ Static access method. """
        if TNEFHuntConfigSingleton.__instance is None:
            TNEFHuntConfigSingleton.__instance = TNEFHuntConfigSingleton()
        return TNEFHuntConfigSingleton.__instance

    @staticmethod
    def reset() -> None:
        """Drops the instance so the next access starts again from the defaults"""
        TNEFHuntConfigSingleton.__instance = None

    def __init__(self) -> None:

        self.search_dir = '.'
        self.search_file = None
        self.output_file = f'tnefhunt_{time.strftime("%Y-%m-%d-%H%M%S")}.txt'
        self.extract_dir = None
        self.search_extensions = ['.dat', '.tnef']
        self.show_warnings = False
        self.max_file_size = FILE_SIZE_LIMIT

    @staticmethod
    def from_args(search_dir: Optional[str] = None,
                  search_file: Optional[str] = None,
                  output_file: Optional[str] = None,
                  extract_dir: Optional[str] = None,
                  extensions_string: Optional[str] = None,
                  show_warnings: bool = False,
                  max_file_size: Optional[str] = None) -> None:
        """If any parameter is provided, it overwrites the previous value
        """

        TNEFHuntConfigSingleton.update(search_dir, search_file, output_file, extract_dir,
                                       extensions_string, show_warnings, max_file_size)

    @staticmethod
    def from_file(config_file: str) -> None:
        """If a config file provided and it has specific values, they overwrite the previous values

        Args:
            config_file (str): Path to config file in INI format
        """

        if not os.path.isfile(config_file):
            raise ValueError("Invalid configuration file.")

        config_from_file: dict = TNEFHuntConfigSingleton.parse_file(config_file)

        search_dir: Optional[str] = TNEFHuntConfigSingleton.try_parse(
            config_from_file=config_from_file, property='search')
        extensions_string: Optional[str] = TNEFHuntConfigSingleton.try_parse(
            config_from_file=config_from_file, property='extensions')
        output_file: Optional[str] = TNEFHuntConfigSingleton.try_parse(
            config_from_file=config_from_file, property='outfile')
        extract_dir: Optional[str] = TNEFHuntConfigSingleton.try_parse(
            config_from_file=config_from_file, property='extract')
        max_file_size: Optional[str] = TNEFHuntConfigSingleton.try_parse(
            config_from_file=config_from_file, property='maxsize')
        show_warnings: bool = TNEFHuntConfigSingleton.check_warnings(config_from_file)

        TNEFHuntConfigSingleton.update(search_dir, None, output_file, extract_dir,
                                       extensions_string, show_warnings, max_file_size)

    @staticmethod
    def parse_file(config_file: str) -> dict:
        config: configparser.ConfigParser = configparser.ConfigParser()
        config.read(config_file)
        config_from_file: dict = {}

        for nvp in config.items('DEFAULT'):
            config_from_file[nvp[0]] = nvp[1]
        return config_from_file

    @staticmethod
    def check_warnings(config_from_file: dict) -> bool:
        if 'warnings' in config_from_file:
            return config_from_file['warnings'].upper() == 'TRUE'
        return False

    @staticmethod
    def try_parse(config_from_file: dict, property: str) -> Optional[str]:
        if property in config_from_file:
            return str(config_from_file[property])
        return None

    @staticmethod
    def update(search_dir: Optional[str], search_file: Optional[str], output_file: Optional[str], extract_dir: Optional[str],
               extensions_string: Optional[str], show_warnings: bool, max_file_size: Optional[str]) -> None:

        conf: TNEFHuntConfigSingleton = TNEFHuntConfigSingleton.instance()
        if search_dir and search_dir != 'None':
            conf.search_dir = search_dir

        if search_file and search_file != 'None':
            conf.search_file = search_file

        if output_file and output_file != 'None':
            conf.output_file = f'{output_file}_{time.strftime("%Y-%m-%d-%H%M%S")}.txt'

        if extract_dir and extract_dir != 'None':
            conf.extract_dir = extract_dir

        if extensions_string and extensions_string != 'None':
            conf.search_extensions = [ext.strip().lower()
                                      for ext in extensions_string.split(',') if ext.strip()]

        if show_warnings:
            conf.show_warnings = show_warnings

        if max_file_size and max_file_size != 'None':
            try:
                conf.max_file_size = int(max_file_size)
            except ValueError as ve:
                raise ValueError(f"Invalid maximum file size: {max_file_size}") from ve
