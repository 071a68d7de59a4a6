from .inspect import *
from .signing import *
