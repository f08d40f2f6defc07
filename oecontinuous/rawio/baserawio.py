"""
baserawio
=========

Classes
-------

BaseRawIO
base class of the objects giving file-backed access to Open Ephys data.

It only sets up logging: each instance gets a logger named after its class,
and the package logger receives ``oecontinuous.logging_handler`` when neither
it nor the root logger has a handler yet.
"""

import logging

from oecontinuous import logging_handler


class BaseRawIO:
    """
    Generic class for readers.

    """

    name = "BaseRawIO"
    description = ""
    extensions = []

    def __init__(self):
        # create a logger for the IO class
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # Create a logger for 'oecontinuous' and add a handler to it if it doesn't have one already.
        # (it will also not add one if the root logger has a handler)
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)
