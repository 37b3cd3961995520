import os
import sys
from pathlib import Path
from typing import NoReturn

from autolend.modules import Configuration
from autolend.modules.ExchangeApiFactory import ExchangeApiFactory
from autolend.modules.Lending import LendingEngine
from autolend.modules.Logger import Logger
from autolend.modules.Scheduler import RunScheduler


def _abort(msg: str) -> NoReturn:
    print(msg)
    sys.exit(1)


class BotOrchestrator:
    """
    Owns the bot components for the lifetime of the process and hands the
    autolend cycle to the run scheduler.
    """

    def __init__(self, config_path: str | Path, dry_run: bool = False, verbose: bool = False):
        self.config_path = Path(config_path)
        self.dry_run = dry_run
        self.verbose = verbose

        self.config: Configuration.RootConfig | None = None
        self.log: Logger | None = None
        self.api = None
        self.engine: LendingEngine | None = None
        self.scheduler: RunScheduler | None = None

    def initialize(self) -> None:
        """
        Builds config, logger, exchange client, engine and scheduler. Any startup
        failure is fatal.
        """
        try:
            self.config = Configuration.load_config(self.config_path)
        except FileNotFoundError:
            _abort(f"Config file '{self.config_path}' not found. Copy config_sample.toml to start.")
        except Exception as ex:
            _abort(f"Invalid configuration {self.config_path}: {ex}")

        bot = self.config.bot
        exchange = self.config.account.exchange
        self.log = Logger(
            json_file=bot.json_file,
            json_log_size=bot.json_log_size,
            exchange=exchange,
            label="AUTOLEND",
            verbose=self.verbose,
        )

        try:
            self.api = ExchangeApiFactory.createApi(
                exchange, self.config, self.log.child(f"API [{exchange}]")
            )
        except Exception as ex:
            _abort(f"Cannot create the {exchange} client: {ex}")

        self.engine = LendingEngine(
            self.config, self.api, self.log.child(f"AUTOLEND [{exchange}]"), dry_run=self.dry_run
        )
        self.scheduler = RunScheduler(
            self.step,
            self.log,
            interval=bot.interval,
            reset_after_count=bot.update_error_reset_after_count,
        )

    def step(self) -> None:
        """One autolend cycle, then the status output is flushed."""
        try:
            report = self.engine.autolend()
            self.log.refreshStatus(f"Lent: {report.total_value:.2f} USD")
        finally:
            self.log.persistStatus()
            sys.stdout.flush()

    def run(self) -> None:
        """Blocks until Ctrl-C."""
        self.log.info(f"Welcome to {self.config.bot.label} on {self.config.account.exchange}")
        if self.dry_run:
            self.log.warn("Dry run: no offer or conversion will be sent")

        try:
            self.scheduler.run_forever()
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> NoReturn:
        if self.log:
            self.log.info("bye")
        print("bye")
        # cycle threads may be blocked in a request
        os._exit(0)
