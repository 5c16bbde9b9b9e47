'''
The stratum layered tag resolution library.
'''

import sys
if (sys.version_info.major, sys.version_info.minor) < (3, 10):  # pragma: no cover
    raise Exception('stratum is not supported on Python versions < 3.10')

version = (0, 1, 0)
verstring = '.'.join([str(x) for x in version])
