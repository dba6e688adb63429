import logging
import os
from datetime import datetime
from typing import Optional

import tnef
import tnefutils
from exceptions import NoMarkerException


class TNEFFile:
    """ TNEFFile: class for a file that can decode itself as TNEF and extract its attachments"""

    filename: str
    dir: str
    path: str
    root: str
    ext: str
    errors: list[str]
    warnings: list[str]
    tnef_data: Optional[tnef.TNEFData]
    size: int
    modified: datetime

    def __init__(self, filename: str, file_dir: str) -> None:
        self.filename = filename
        self.dir = file_dir
        self.path = os.path.join(self.dir, self.filename)
        self.root, self.ext = os.path.splitext(self.filename)
        self.errors = []
        self.warnings = []
        self.tnef_data = None
        self.size = -1

    def __lt__(self, other: 'TNEFFile') -> bool:

        return self.path.lower() < other.path.lower()

    def set_file_stats(self) -> None:

        try:
            stat: os.stat_result = os.stat(self.path)
            self.size = stat.st_size
            self.modified = datetime.fromtimestamp(stat.st_mtime)
        except OSError as ex:
            self.size = -1
            self.set_error(str(ex))

    def set_error(self, error_msg: str) -> None:

        logging.info(f'{error_msg} on {self.path}')
        self.errors.append(error_msg)

    def decode(self, max_file_size: int) -> Optional[tnef.TNEFData]:
        """Decodes the file unless it is bigger than max_file_size; failures are recorded in errors"""

        if self.size < 0:
            self.set_file_stats()
        if self.errors:
            return None
        if self.size > max_file_size:
            self.set_error(
                f'File size {tnefutils.size_friendly(self.size)} over limit of {tnefutils.size_friendly(max_file_size)} for decoding')
            return None

        try:
            self.tnef_data = tnef.decode_file(self.path, self.warnings)
        except NoMarkerException as ex:
            self.set_error(f'Invalid TNEF file: {ex}')
        except OSError as ex:
            self.set_error(str(ex))

        return self.tnef_data

    def extract(self, extract_dir: str) -> list[str]:
        """Writes every attachment with data into extract_dir/<file root>/ and returns the written paths"""

        written: list[str] = []
        if self.tnef_data is None:
            return written

        target_dir: str = os.path.join(extract_dir, tnefutils.get_safe_filename(self.root) or 'tnef')
        used_names: set[str] = set()
        for index, attachment in enumerate(self.tnef_data.attachments):
            if not attachment.data:
                continue
            filename: str = tnefutils.get_safe_filename(os.path.basename(attachment.title.replace('\\', '/')))
            if filename in ('', '.', '..'):
                filename = f'attachment_{index}'
            filename = self.__unique_name(filename, used_names)
            used_names.add(filename.lower())

            try:
                os.makedirs(target_dir, exist_ok=True)
                attachment_path: str = os.path.join(target_dir, filename)
                with open(attachment_path, 'wb') as f:
                    f.write(attachment.data)
                written.append(attachment_path)
            except OSError as ex:
                self.set_error(f'Could not extract {filename}: {ex}')

        return written

    def __unique_name(self, filename: str, used_names: set[str]) -> str:

        root, ext = os.path.splitext(filename)
        candidate: str = filename
        suffix: int = 1
        while candidate.lower() in used_names:
            candidate = f'{root}_{suffix}{ext}'
            suffix += 1
        return candidate
