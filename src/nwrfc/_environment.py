# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Reference counted process-wide RFC library environment."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Tuple

from ._binding import Binding

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_references: Dict[int, Tuple[Binding, int]] = {}


def acquire(binding: Binding) -> None:
    """Take a reference on the environment of ``binding``, initializing it first if needed."""
    with _lock:
        entry = _references.get(id(binding))
        if entry is None:
            binding.initialize()
            logger.debug("RFC environment initialized for %r", binding)
            _references[id(binding)] = (binding, 1)
        else:
            _references[id(binding)] = (binding, entry[1] + 1)


def release(binding: Binding) -> None:
    """Drop a reference; the last one shuts the environment down."""
    with _lock:
        entry = _references.get(id(binding))
        if entry is None:
            return
        count = entry[1] - 1
        if count > 0:
            _references[id(binding)] = (binding, count)
            return
        del _references[id(binding)]
        binding.shutdown()
        logger.debug("RFC environment shut down for %r", binding)


def references(binding: Binding) -> int:
    with _lock:
        entry = _references.get(id(binding))
        return entry[1] if entry else 0
