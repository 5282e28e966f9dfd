"""Domain modules package."""

from drivedesk.modules.audit import models as audit_models  # noqa: F401
from drivedesk.modules.booking import models as booking_models  # noqa: F401
from drivedesk.modules.ledger import models as ledger_models  # noqa: F401
from drivedesk.modules.students import models as students_models  # noqa: F401
