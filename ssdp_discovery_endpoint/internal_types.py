# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type hints used internally by this package"""

from __future__ import annotations

from typing import (
    Any, Dict, List, Optional, Set, Tuple, Union, Callable, Iterable, Iterator,
    Mapping, MutableMapping, Sequence, TypeVar, Type, cast,
  )
from types import TracebackType
from typing_extensions import Self, TypeAlias

HostAndPort: TypeAlias = Tuple[str, int]
"""An IP address (or hostname) and port number. IPv6 socket addresses may carry
   additional flowinfo/scope_id elements; only the first two are significant."""
