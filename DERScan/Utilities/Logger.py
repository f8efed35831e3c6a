# Logger.py to add memory usage and worker name to DERScan logging
import logging
import multiprocessing as mp
import resource
import os
import sys

class MemoryLogger(logging.Logger):
    """Prefix every message with the peak memory of the process and,
    for messages sent from a pool worker, the worker name.
    """
    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
        prefix = f"[{self.get_memory_usage()} MB]"
        worker = mp.current_process().name
        if worker != "MainProcess":
            prefix = f"{prefix} [{worker}]"
        super()._log(level, f"{prefix} {msg}", args, exc_info, extra, stack_info, stacklevel)

    @staticmethod
    def get_memory_usage():
        mem_usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        if os.name == 'posix' and os.uname().sysname == 'Darwin':
            # macOS reports bytes
            mem_usage = mem_usage / 1024
        return int( mem_usage / 1024 ) # Convert to MB

def set_verbosity(verbose):
    """Set the level of every DERScan logger.

    verbose 0: only errors, 1: also warnings, 2: also process
    information, 3: also debug messages.

    Ret: the logging level.
    """
    level = (4 - verbose) * 10
    logging.getLogger("DERScan").setLevel(level)
    return level

logging.basicConfig(level=20,
                    format='%(levelname)-5s @ %(asctime)s: %(message)s ',
                    datefmt='%d %b %Y %H:%M:%S',
                    stream=sys.stderr
                    )

logging.setLoggerClass(MemoryLogger)
