import logging
import traceback

import msgspec.json as m_json

_cb = lambda x: repr(x)[:256]

class JsonFormatter(logging.Formatter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

    def format(self, record: logging.LogRecord):

        record.message = record.getMessage()
        mesg = self.formatMessage(record)
        ret = {
            'message': mesg,
            'logger': {
                'name': record.name,
                'process': record.processName,
                'filename': record.filename,
                'func': record.funcName,
            },
            'level': record.levelname,
            'time': self.formatTime(record, self.datefmt),
        }

        if record.exc_info:
            exc = record.exc_info[1]
            info = {
                'errname': exc.__class__.__name__,
                'mesg': str(exc),
                'etb': ''.join(traceback.format_exception(*record.exc_info)).rstrip('\n'),
            }
            errinfo = getattr(exc, 'errinfo', None)
            if errinfo:
                info.update({k: v for k, v in errinfo.items() if k not in info})
            ret['err'] = info

        # extra log info is stuffed into a single dictionary
        extras = record.__dict__.get('stratum')
        if extras:
            ret.update({k: v for k, v in extras.items() if k not in ret})

        return m_json.encode(ret, enc_hook=_cb).decode()
