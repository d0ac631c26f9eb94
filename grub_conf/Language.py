#!/usr/bin/env python3
"""
Locale environment for grub2-mkconfig, so that menu titles are
generated in the system language rather than the caller's.
"""
import logging
from typing import Dict, Optional

from .GrubDefault import read_sysconfig

log = logging.getLogger(__name__)

LANGUAGE_FILE = '/etc/sysconfig/language'


def systemwide_locale(path: str = LANGUAGE_FILE) -> Dict[str, Optional[str]]:
    """
    Environment overrides for running grub2-mkconfig.

    None values mean "remove from the environment". An empty dict is
    returned when the language file does not exist.
    """
    try:
        values = read_sysconfig(path)
    except FileNotFoundError:
        log.info('%s does not exist. Using current locale', path)
        return {}

    lang = values.get('RC_LANG') or 'C'
    log.info('System language is %s', lang)
    return {'LC_MESSAGES': None, 'LC_ALL': None, 'LANGUAGE': None, 'LANG': lang}
