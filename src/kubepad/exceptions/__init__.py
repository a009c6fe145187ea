"""
Custom exception hierarchy for Kubepad.

## Exception Hierarchy

```
KubepadError (base)
├── ConfigurationError
│   ├── ConfigFileInvalidError
│   └── ConfigValidationError
└── ClusterError
    ├── InvalidSlotError
    ├── EmptySlotError
    ├── NodeNotFoundError
    └── ClusterApiError
```

All custom exceptions inherit from `KubepadError`, which provides
`user_message`, `technical_message`, `recoverable` and `recovery_hint`.

### Example: Scaling an empty row

```python
from kubepad.exceptions import EmptySlotError

raise EmptySlotError(index=7, operation="scale")

# User sees: "Cannot scale: no app deployed at row 7"
```

See `kubepad.exceptions.handlers` for utilities to handle these exceptions systematically.
"""

from .base import KubepadError
from .cluster import (
    ClusterApiError,
    ClusterError,
    EmptySlotError,
    InvalidSlotError,
    NodeNotFoundError,
)
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .handlers import (
    ErrorContext,
    format_error_for_display,
    handle_errors,
    wrap_api_error,
    wrap_pydantic_error,
)

__all__ = [
    # Cluster
    "ClusterApiError",
    "ClusterError",
    "ConfigFileInvalidError",
    "ConfigValidationError",
    # Config
    "ConfigurationError",
    "EmptySlotError",
    "ErrorContext",
    "InvalidSlotError",
    # Base
    "KubepadError",
    "NodeNotFoundError",
    "format_error_for_display",
    # Handlers
    "handle_errors",
    "wrap_api_error",
    "wrap_pydantic_error",
]
