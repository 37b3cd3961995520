import atexit
import json
import shutil
import sys
import time
from collections import deque
from pathlib import Path
from typing import Any

from .Utils import debug_date


class ConsoleOutput:
    """
    Log lines go to stderr above a single status line that is rewritten in place.
    """

    def __init__(self) -> None:
        self._status: str = ""
        atexit.register(self._exit)

    def _exit(self) -> None:
        # wipe the status line, plus room for a ^C echoed by the shell
        self._status += "  "
        self.status("")

    def _padding(self, text: str) -> int:
        return max(len(self._status) - len(text), 0)

    def status(self, msg: Any, _time_str: str = "") -> None:
        status = str(msg)
        width = shutil.get_terminal_size().columns
        if status and len(status) > width:
            status = f"{status[: width - 4]}..."
        pad = self._padding(status)
        sys.stderr.write("\r" + status + " " * pad + "\b" * pad)
        self._status = status

    def printline(self, line: str) -> None:
        sys.stderr.write("\r" + line + " " * self._padding(line) + "\n" + self._status)


class JsonOutput:
    """
    Keeps the last log lines, per coin values and totals in memory and dumps them
    to a JSON status file, rewritten after every cycle.
    """

    def __init__(self, file_path: str, log_limit: int, exchange: str = "", label: str = "") -> None:
        self.jsonOutputFile: str = file_path
        self.jsonOutput: dict[str, Any] = {"exchange": exchange, "label": label}
        self.jsonOutputCoins: dict[str, Any] = {}
        self.jsonOutputTotals: dict[str, Any] = {}
        self.clearStatusValues()
        self.jsonOutputLog: deque[str] = deque(maxlen=log_limit)

    def status(self, status: str, time_str: str) -> None:
        self.jsonOutput["last_update"] = time_str
        self.jsonOutput["last_status"] = status

    def printline(self, line: str) -> None:
        self.jsonOutputLog.append(line.replace("\n", " | "))

    def writeJsonFile(self) -> None:
        with Path(self.jsonOutputFile).open("w", encoding="utf-8") as f:
            self.jsonOutput["log"] = list(self.jsonOutputLog)
            f.write(json.dumps(self.jsonOutput, ensure_ascii=True, sort_keys=True))

    def statusValue(self, coin: str, key: str, value: Any) -> None:
        if coin not in self.jsonOutputCoins:
            self.jsonOutputCoins[coin] = {}
        self.jsonOutputCoins[coin][key] = str(value)

    def totalValue(self, key: str, value: Any) -> None:
        self.jsonOutputTotals[key] = str(value)

    def clearStatusValues(self) -> None:
        self.jsonOutputCoins = {}
        self.jsonOutput["raw_data"] = self.jsonOutputCoins
        self.jsonOutputTotals = {}
        self.jsonOutput["totals"] = self.jsonOutputTotals


class Logger:
    """
    Leveled logger writing "<utc date> <LEVEL> <label> <message>" lines to the
    console or to the JSON output.

    Loggers created with child() share the output of their parent.
    """

    def __init__(
        self,
        json_file: str = "",
        json_log_size: int = -1,
        exchange: str = "",
        label: str = "AUTOLEND",
        verbose: bool = False,
        output: JsonOutput | ConsoleOutput | None = None,
    ) -> None:
        self.label = label
        self.verbose = verbose
        self._status: str = ""
        if output is not None:
            self.output = output
        elif json_file != "" and json_log_size != -1:
            self.output = JsonOutput(json_file, json_log_size, exchange, label)
        else:
            self.output = ConsoleOutput()

    def child(self, label: str) -> "Logger":
        return Logger(label=label, verbose=self.verbose, output=self.output)

    @staticmethod
    def timestamp() -> str:
        return debug_date(time.time())

    def _write(self, level: str, msg: Any) -> None:
        line = f"{self.timestamp()} {level:<5} {self.label} {msg}"
        self.output.printline(line)
        if level == "ERROR" and isinstance(self.output, JsonOutput):
            print(line)

    def debug(self, msg: Any) -> None:
        if self.verbose:
            self._write("DEBUG", msg)

    def info(self, msg: Any) -> None:
        self._write("INFO", msg)

    def warn(self, msg: Any) -> None:
        self._write("WARN", msg)

    def error(self, msg: Any) -> None:
        self._write("ERROR", msg)

    def refreshStatus(self, status: str = "") -> None:
        if status != "":
            self._status = status
        self.output.status(self._status, self.timestamp())

    def updateStatusValue(self, coin: str, key: str, value: Any) -> None:
        if isinstance(self.output, JsonOutput):
            self.output.statusValue(coin, key, value)

    def updateTotalValue(self, key: str, value: Any) -> None:
        if isinstance(self.output, JsonOutput):
            self.output.totalValue(key, value)

    def persistStatus(self) -> None:
        if isinstance(self.output, JsonOutput):
            self.output.writeJsonFile()
            self.output.clearStatusValues()
