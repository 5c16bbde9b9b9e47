import argparse

import stratum.exc as s_exc

import stratum.lib.const as s_const
import stratum.lib.output as s_output

class Parser(argparse.ArgumentParser):
    '''
    An ArgumentParser for the stratum tools which prints to an OutPut and raises ParserExit.
    '''
    def __init__(self, prog=None, outp=s_output.stdout, **kwargs):

        self.outp = outp
        self.exited = False

        argparse.ArgumentParser.__init__(self, prog=prog,
                                         formatter_class=argparse.RawDescriptionHelpFormatter,
                                         **kwargs)

    def addResolveArgs(self):
        '''
        Add the --conf and --log-level options shared by tools which resolve tags.
        '''
        self.add_argument('--conf', default=None,
                          help='A YAML file containing the resolution configuration.')
        self.add_argument('--log-level', default=None, choices=list(s_const.LOG_LEVEL_CHOICES.keys()),
                          help='Specify the log level.', type=str.upper)

    def exit(self, status=0, message=None):
        # argparse expects exit() to never return
        self.exited = True
        self.status = status

        if message is not None:
            self.outp.printf(message)

        raise s_exc.ParserExit(mesg=message, status=status)

    def _print_message(self, text, fd=None):
        self.outp.printf(text, addnl=False)
