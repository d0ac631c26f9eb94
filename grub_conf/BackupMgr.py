#!/usr/bin/env python3
"""
BackupMgr: checksum-named copies of /etc/default/grub.

Backup file names look like YYYYMMDD-HHMMSS-{CHECKSUM}.{TAG}.bak where
CHECKSUM is the first 8 hex digits of the SHA256 of the content, so an
identical file is never stored twice.
"""
import hashlib
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

log = logging.getLogger(__name__)

BACKUP_FILENAME_PATTERN = re.compile(
    r"(\d{8}-\d{6})-([0-9a-fA-F]{8})\.([a-zA-Z0-9_-]+)\.bak$"
)


class BackupMgr:
    """
    Manages backups of one target file in one backup directory.
    """

    def __init__(self, target_path: Union[Path, str], backup_dir: Union[Path, str]):
        self.target_path = Path(target_path)
        self.backup_dir = Path(backup_dir)

    def _ensure_backup_dir(self):
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def calc_checksum(source: Union[Path, str, bytes]) -> str:
        """
        8-character uppercase hex checksum (start of SHA256) of a file
        (Path) or of text/bytes content.
        """
        if isinstance(source, Path):
            content = source.read_bytes()
        elif isinstance(source, str):
            content = source.encode('utf-8')
        elif isinstance(source, bytes):
            content = source
        else:
            raise TypeError("Source must be a Path, str or bytes.")
        return hashlib.sha256(content).hexdigest()[:8].upper()

    def get_backups(self) -> Dict[str, Path]:
        """ checksum -> backup file """
        backups: Dict[str, Path] = {}
        if not self.backup_dir.is_dir():
            return backups
        for file_path in sorted(self.backup_dir.iterdir()):
            match = BACKUP_FILENAME_PATTERN.search(file_path.name)
            if match:
                backups[match.group(2).upper()] = file_path
        return backups

    def create_backup(self, tag: str) -> Optional[Path]:
        """
        Copy the target into the backup directory.

        Returns the new backup, the existing backup with the same
        checksum, or None when the target does not exist yet.
        """
        if not self.target_path.exists():
            log.info('%s does not exist, nothing to back up', self.target_path)
            return None
        if not re.match(r'^[a-zA-Z0-9_-]+$', tag):
            raise ValueError(f'invalid backup tag {tag!r}')

        checksum = self.calc_checksum(self.target_path)
        existing = self.get_backups()
        if checksum in existing:
            log.info('%s is identical to backup %s', self.target_path, existing[checksum].name)
            return existing[checksum]

        self._ensure_backup_dir()
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        new_backup_path = self.backup_dir / f"{timestamp}-{checksum}.{tag}.bak"
        shutil.copy2(self.target_path, new_backup_path)
        log.info('created backup %s', new_backup_path.name)
        return new_backup_path

    def delete_backup(self, backup_file: Path) -> bool:
        """ Delete one backup; False if it was already gone """
        try:
            Path(backup_file).unlink()
        except FileNotFoundError:
            return False
        return True

    def restore_backup(self, checksum: str, dest_path: Optional[Path] = None) -> Path:
        """
        Copy the backup with the given checksum over the target
        (or dest_path). KeyError when no such backup exists.
        """
        backups = self.get_backups()
        backup_file = backups.get(checksum.upper())
        if backup_file is None:
            raise KeyError(f'no backup with checksum {checksum}')
        destination = Path(dest_path) if dest_path is not None else self.target_path
        shutil.copy2(backup_file, destination)
        log.info('restored %s to %s', backup_file.name, destination)
        return backup_file
