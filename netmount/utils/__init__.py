"""Utilities package"""

from netmount.utils.logger import get_logger, setup_logging, log_event, log_error
from netmount.utils.exceptions import *
from netmount.utils.validators import *

__all__ = ['get_logger', 'setup_logging', 'log_event', 'log_error']
