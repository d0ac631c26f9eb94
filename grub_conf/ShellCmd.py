#!/usr/bin/env python3
"""
run_cmd: the one place grub-conf starts external programs.
"""
import logging
import os
import subprocess
from typing import Dict, List, Optional

log = logging.getLogger(__name__)


def merged_env(env: Optional[Dict[str, Optional[str]]]) -> Optional[Dict[str, str]]:
    """ os.environ with overrides applied; None values delete the variable """
    if not env:
        return None
    out = dict(os.environ)
    for key, value in env.items():
        if value is None:
            out.pop(key, None)
        else:
            out[key] = value
    return out


def run_cmd(argv: List[str], env: Optional[Dict[str, Optional[str]]] = None) -> str:
    """
    Run argv and return stdout.
    A non-zero exit raises subprocess.CalledProcessError.
    """
    log.info('running %s', ' '.join(argv))
    process = subprocess.run(argv, capture_output=True, text=True, check=False,
                             env=merged_env(env))
    if process.returncode != 0:
        log.error('%s failed (%d): %s', argv[0], process.returncode, process.stderr.strip())
        raise subprocess.CalledProcessError(process.returncode, argv,
                                            output=process.stdout, stderr=process.stderr)
    return process.stdout
