import inspect
import logging
import time

import sentry_sdk

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%d-%b %H:%M:%S"


class Logger:
    def __init__(
        self,
        debug=False,
        level: int = None,
        name: str = "pingutils",
        log_file: str = None,
        sentry_dsn: str = None,
        ssdk: sentry_sdk = None,
    ):
        """Initializes the logger class

        Args:
            debug (bool, optional): Show debugging. Defaults to False.
            level (int, optional): The logging level when not debugging. Defaults to None, which leaves the level of an existing logger alone.
            name (str, optional): The name of the underlying logger. Defaults to "pingutils".
            log_file (str, optional): Also append records to this file. Defaults to None.
            sentry_dsn (str, optional): Report exceptions and timings to sentry. Defaults to None.
            ssdk (sentry_sdk, optional): An already initialised sentry_sdk. Defaults to None.
        """
        self.DEBUG = debug
        self.logging = logging.getLogger(name)
        if self.DEBUG:
            self.logging.setLevel(logging.DEBUG)
        elif level is not None:
            self.logging.setLevel(level)

        if log_file is not None and not any(
            isinstance(h, logging.FileHandler) and h.baseFilename.endswith(log_file)
            for h in self.logging.handlers
        ):
            handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            self.logging.addHandler(handler)

        if self.DEBUG:
            self.logging.info("Debugging enabled")

        if sentry_dsn is not None and ssdk is None:
            sentry_sdk.init(
                dsn=sentry_dsn,
                traces_sample_rate=1.0,
            )
            self.sentry_sdk = sentry_sdk
        elif ssdk is not None:
            self.sentry_sdk = ssdk
        else:
            self.sentry_sdk = None

        # functions listed here get their full call chain in the prefix
        self.v_stack = ()

    def stack_trace(self, stack):
        """Returns the ``module.function`` of the caller"""
        out = (
            stack[1].filename.replace("\\", "/").split("/")[-1].split(".")[0]
            + "."
            + f"{stack[1].function}"
        )
        if any((v in out for v in self.v_stack)):
            out = "->".join(
                [
                    stack[-i].filename.replace("\\", "/").split("/")[-1].split(".")[0]
                    + "."
                    + f"{stack[-i].function}"
                    for i in range(1, len(stack))
                ]
            )

        return out

    def debug(self, *args):
        msg = " ".join([str(arg) for arg in args])
        self.logging.debug(f"[{self.stack_trace(inspect.stack())}] {msg}")

    def info(self, *message):
        message = " ".join([str(arg) for arg in message])
        self.logging.info(f"[{self.stack_trace(inspect.stack())}] {message}")

    def warning(self, *message):
        message = " ".join([str(arg) for arg in message])
        self.logging.warning(f"[{self.stack_trace(inspect.stack())}] {message}")

    def error(self, *message, **kwargs):
        message = " ".join([str(arg) for arg in message])
        self.logging.error(f"[{self.stack_trace(inspect.stack())}] {message}", **kwargs)

    def critical(self, *message):
        message = " ".join([str(arg) for arg in message])
        self.logging.critical(f"[{self.stack_trace(inspect.stack())}] {message}")

    def log(self, *args, **kwargs):
        """Overload for log"""
        self.logging.log(*args, **kwargs)

    def exception(self, message, *_, exception: Exception = None):
        message = f"[{self.stack_trace(inspect.stack())}] {message}"
        if exception is None:
            self.logging.exception(message)
        else:
            self.logging.error(
                f"{message}: {exception.__class__.__name__}: {exception}",
                exc_info=exception,
            )

        if self.sentry_sdk is not None:
            self.sentry_sdk.capture_exception(exception)

    def timer(self, func: callable, *args, **kwargs):
        """Calls ``func`` and logs how long it took, errors still propagate"""
        if inspect.iscoroutinefunction(func):
            raise TypeError(f"{func.__name__} is a coroutine function")

        start = time.perf_counter()
        try:
            if self.sentry_sdk is not None:
                with self.sentry_sdk.start_transaction(
                    name=f"{func.__name__}", op=f"{func.__name__}"
                ):
                    return func(*args, **kwargs)
            return func(*args, **kwargs)
        finally:
            tDelta = self.auto_range_time(time.perf_counter() - start)
            self.debug(f"Function {func.__name__} took {tDelta}")

    @staticmethod
    def auto_range_time(seconds: float) -> str:
        """
        Returns a time string for a given number of seconds

        Args:
            seconds (float): The number of seconds

        Returns:
            str: The time string
        """

        units = {
            "hr": str(int(seconds // 3600)),
            "min": str(int(seconds // 60)),
            "s": str(int(seconds)),
            "ms": str(int(seconds * 1000)),
            "us": str(int(seconds * 1000000)),
            "ns": str(int(seconds * 1000000000)),
        }

        best = ("ns", units["ns"])
        units = sorted(units.items(), key=lambda x: len(x[1]))
        for unit in units:
            if unit[1] != "0":
                best = unit
                break

        return f"{best[1]} {best[0]}"
