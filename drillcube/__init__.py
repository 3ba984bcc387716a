"""In-memory drill-down cubes"""

__version__ = "1.0"

from .common import *
from .errors import *
from .logging import *
from .metadata import *
from .query import *
from .serialization import *
