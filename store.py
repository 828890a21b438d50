"""
Record storage for the intake service.

Each collection (orders, reviews) is one flat JSON array on disk. Every
request reads the whole array and writes the whole array back.
"""

import copy
import json
import logging
import os
import stat
import tempfile

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644


class IntakeError(Exception):
    status_code = 500
    message = 'server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class StorageFailure(IntakeError):
    message = 'storage unavailable'


class JsonFileStore:
    """one collection backed by a pretty-printed JSON file"""

    def __init__(self, path, strict=False):
        self.path = path
        self.strict = strict

    def __repr__(self):
        return f'<JsonFileStore {self.path}>'

    def ensure_exists(self):
        if os.path.exists(self.path):
            return
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        self.write_all([])
        logger.info('created empty collection at %s', self.path)

    def read_all(self):
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = f.read()
            records = json.loads(raw or '[]')
        except (OSError, ValueError) as e:
            return self._fail(f'could not read {self.path}: {e}')
        if not isinstance(records, list):
            return self._fail(f'{self.path} does not hold a JSON array')
        if not all(isinstance(r, dict) for r in records):
            return self._fail(f'{self.path} holds entries that are not objects')
        return records

    def _fail(self, reason):
        if self.strict:
            raise StorageFailure(reason)
        # fail open: a broken file looks like an empty collection
        logger.warning('%s, treating collection as empty', reason)
        return []

    def _file_mode(self):
        # mkstemp files are 0600, keep the mode an existing file already has
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            return DEFAULT_FILE_MODE

    def write_all(self, records):
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tmp-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2)
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class MemoryStore:
    """in-memory collection, same interface as JsonFileStore"""

    def __init__(self, records=None):
        self._records = copy.deepcopy(records or [])

    def ensure_exists(self):
        pass

    def read_all(self):
        return copy.deepcopy(self._records)

    def write_all(self, records):
        self._records = copy.deepcopy(list(records))
