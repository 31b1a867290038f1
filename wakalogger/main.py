"""WakaLogger - command line entry point."""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from . import __version__
from .auth import KeychainManager
from .config import Config, ConfigMissingError, Credentials, setup_logging
from .sync import GistStore, SyncEngine, SyncStats, WakaTimeClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


class WakaLoggerApp:
    """Wires config and credentials into clients and runs the engine."""

    def __init__(self, config: Config, credentials: Credentials, gist_id: Optional[str] = None):
        self.config = config
        self.credentials = credentials
        self.source = WakaTimeClient(
            username=credentials.wakatime_username,
            api_key=credentials.wakatime_api_key,
            base_url=config.wakatime.base_url,
            timeout=config.sync.timeout,
        )
        self.store = GistStore(
            username=credentials.github_username,
            password=credentials.github_password,
            gist_id=gist_id,
            base_url=config.gist.base_url,
            filename=config.gist.filename,
            description=config.gist.description,
            lookback_days=config.sync.lookback_days,
            timeout=config.sync.timeout,
        )
        self.engine = SyncEngine(
            source=self.source,
            store=self.store,
            lookback_days=config.sync.lookback_days,
        )
        self.scheduler: Optional[BlockingScheduler] = None

    def run_once(self) -> SyncStats:
        """Run one sync and report the outcome on stdout."""
        stats = self.engine.run()

        if stats.created_gist_id:
            self._remember_gist(stats.created_gist_id)

        if stats.success:
            print(
                f"Synced {stats.start_date} to {stats.end_date}: "
                f"{stats.entries_added} entries added"
                + (f", {len(stats.failed_dates)} days failed" if stats.failed_dates else "")
            )
        else:
            print(f"Sync failed: {'; '.join(stats.errors)}")
        return stats

    def _remember_gist(self, gist_id: str) -> None:
        """Keep a newly created gist id for the following runs."""
        print(f"Created gist {gist_id}. Set WAKALOGGER_GIST_ID={gist_id} to reuse it.")
        self.store.created = False
        self.config.gist.gist_id = gist_id
        if not self.config.writable:
            logger.warning(
                f"Not writing gist id to {self.config.path}: the file could not be read"
            )
            return
        try:
            self.config.save()
        except OSError as e:
            logger.error(f"Could not write gist id to config: {e}")

    def run_scheduled(self) -> None:
        """Run now, then every ``sync.interval_hours`` until interrupted."""
        self.run_once()
        self.scheduler = BlockingScheduler()
        self.scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(hours=self.config.sync.interval_hours),
            id="sync_job",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Next sync in {self.config.sync.interval_hours}h")
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler stopped")

    def close(self) -> None:
        self.source.close()
        self.store.close()

    def __enter__(self) -> "WakaLoggerApp":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SingleInstanceLock:
    """File-based single-instance lock using advisory locking.

    Two runs against the same gist would overwrite each other's work, so
    only one process per machine may sync at a time.
    """

    def __init__(self, path: Optional[Path] = None):
        self._file = None
        self._path = str(path or Config.get_config_dir() / ".wakalogger.lock")

    def acquire(self) -> bool:
        """Try to acquire the lock. Returns True on success."""
        os.makedirs(os.path.dirname(self._path), exist_ok=True)
        self._file = open(self._path, "a+")  # noqa: SIM115
        try:
            if sys.platform == "win32":
                import msvcrt
                msvcrt.locking(self._file.fileno(), msvcrt.LK_NBLCK, 1)
            else:
                import fcntl
                fcntl.flock(self._file, fcntl.LOCK_EX | fcntl.LOCK_NB)
            self._file.seek(0)
            self._file.truncate(0)
            self._file.write(str(os.getpid()))
            self._file.flush()
            return True
        except OSError:
            self._file.close()
            self._file = None
            return False

    def release(self) -> None:
        """Release the lock and clean up."""
        if self._file:
            try:
                if sys.platform == "win32":
                    import msvcrt
                    try:
                        msvcrt.locking(self._file.fileno(), msvcrt.LK_UNLCK, 1)
                    except OSError:
                        pass
                else:
                    import fcntl
                    fcntl.flock(self._file, fcntl.LOCK_UN)
                self._file.close()
                os.unlink(self._path)
            except OSError:
                pass
            self._file = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wakalogger",
        description="Append daily WakaTime durations to a private GitHub gist.",
    )
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Keep running and sync every sync.interval_hours",
    )
    parser.add_argument(
        "--store-credentials",
        action="store_true",
        help="Save the credentials from the environment in the system keychain",
    )
    parser.add_argument(
        "--forget-credentials",
        action="store_true",
        help="Remove the credentials saved in the system keychain",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[list[str]] = None, environ: Mapping[str, str] = os.environ) -> int:
    """Main entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    config = Config.load(args.config)
    setup_logging(args.debug or config.debug_mode)

    keychain = KeychainManager()
    if args.forget_credentials:
        if not keychain.delete():
            return EXIT_FAILED
        print("Stored credentials removed.")
        return EXIT_OK

    try:
        credentials = Credentials.resolve(environ, stored=keychain.load())
    except ConfigMissingError as e:
        logger.error(str(e))
        print(f"Configuration error: {e}")
        return EXIT_CONFIG

    if args.store_credentials:
        return EXIT_OK if keychain.store(credentials) else EXIT_FAILED

    lock = SingleInstanceLock()
    if not lock.acquire():
        print("WakaLogger is already running.")
        return EXIT_FAILED

    try:
        with WakaLoggerApp(config, credentials, gist_id=config.resolve_gist_id(environ)) as app:
            if args.schedule:
                app.run_scheduled()
                return EXIT_OK
            stats = app.run_once()
            return EXIT_OK if stats.success else EXIT_FAILED
    finally:
        lock.release()


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
