from .observation import *
from .service import *
