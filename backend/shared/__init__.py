"""
Shared module for code used by the REST API, the CLI and the tests.

STRUCTURE:
- shared.security: Access token verification
  - auth.py: JWT verification, RequestContext, current_user_context

- shared.infrastructure: Database and request plumbing
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and logging filter

- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Order/payment statuses, price types, limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging and an ErrorKind
  - validators.py: Money rounding, quantity and amount checks, LIKE escaping
  - schemas.py: Pydantic request/response schemas

IMPORT EXAMPLES:
    from shared.security.auth import RequestContext, current_user_context
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, PaymentStatus
    from shared.utils.exceptions import NotFoundError, ValidationError
    from shared.utils.validators import to_money
"""
