from datamodel.errors import *
from datamodel.reminder_base import *

from datamodel.errors import __all__ as _errors_all
from datamodel.reminder_base import __all__ as _reminder_all

__all__ = [*_errors_all, *_reminder_all]
