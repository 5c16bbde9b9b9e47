import logging

# Logging related constants
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s ' \
             '[%(filename)s:%(funcName)s:%(threadName)s:%(processName)s]'
LOG_LEVEL_CHOICES = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}
LOG_LEVEL_INVERSE_CHOICES = {v: k for k, v in LOG_LEVEL_CHOICES.items()}

# Model related constants
ROOT = '__root__'

PLUS = 'Plus'
RATE = 'Rate'

# multiplier applied to summed rate channels
RATE_SCALE = 0.01

FTYPES = ('number', 'string', 'list', 'text', 'map', 'structure', 'code')

# field types which gain both a Plus and a Rate channel
PLUS_RATE_TYPES = ('number', 'map')
# field types which only gain a Plus channel
PLUS_TYPES = ('string', 'list', 'text')
