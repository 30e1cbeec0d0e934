# src/drill_api/core/logging/
# ├─ __init__.py            # public API: setup_logging, set_request_id, RequestIDMiddleware
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings)
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# ├─ filters.py             # RequestIdFilter, RedactFilter (+ contextvar helpers)
# ├─ handlers.py            # handler mappings for dictConfig (console/file)
# └─ middleware.py          # Starlette middleware that sets the request id


from .builder import make_dict_config, setup_logging
from .filters import RequestIdFilter, get_request_id, reset_request_id, set_request_id
from .middleware import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = [
    "setup_logging",
    "make_dict_config",
    "set_request_id",
    "reset_request_id",
    "get_request_id",
    "RequestIdFilter",
    "RequestIDMiddleware",
    "REQUEST_ID_HEADER",
]
