"""Interface configuration engine - the public init/set/get/delete/list operations.

Each call starts from what is on disk right now:
1. Load and merge every document in the netplan directory
2. Validate the requested change (set only)
3. Merge the change into the in-memory document
4. Commit the result as the single configuration file and apply it

There is no cache and no lock between calls; concurrent writers can
lose updates. One management path at a time is assumed.
"""
import logging
from contextlib import contextmanager
from typing import Callable, Optional

from ..config.settings import Settings
from ..system.commands import CommandError, run_command
from ..system.interfaces import list_interface_names
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed_section_sync
from .commit import CommitPipeline, CommitResult
from .errors import InterfaceNotFound
from .loader import load_directory
from .merge import init_interface, set_interface, subtract_interface
from .schema import InterfaceView, NetplanDocument
from .validator import InterfaceValidator, ValidationResult

logger = logging.getLogger(__name__)


class NetplanEngine:
    """
    Manage ethernet interface settings stored in netplan documents.

    Usage:
        engine = NetplanEngine()
        engine.set("eno3", InterfaceView(
            addresses=["192.168.0.205/24"],
            gateway4="192.168.0.1",
            nameservers=["164.124.101.1"],
        ))
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Callable = run_command,
        interfaces: Callable[..., list[str]] = list_interface_names,
    ):
        """
        Args:
            settings: Directories and commands (default: Settings())
            runner: Command runner, ``runner(program, args)``
            interfaces: Live interface enumeration, ``interfaces(prefix)``
        """
        self.settings = settings or Settings()
        self.runner = runner
        self.interfaces = interfaces
        self.validator = InterfaceValidator()
        self.pipeline = CommitPipeline(self.settings, runner)

    def load(self) -> NetplanDocument:
        """Load the merged view of the netplan directory."""
        return load_directory(self.settings.netplan_dir, self.settings.file_suffixes)

    def validate(self, ifname: str, view: InterfaceView) -> ValidationResult:
        """Validate an edit against the current on-disk configuration."""
        return self.validator.validate(self.load(), ifname, view)

    def init(self, ifname: str) -> CommitResult:
        """
        Clear every setting of a live interface.

        The running interface is also reset with ifconfig, because applying
        the configuration does not remove addresses already assigned.

        Raises:
            ConfigNotFound: No configuration file exists
            InterfaceNotFound: The host has no such interface
            CommitFailure: Writing or applying the configuration failed
            CommandError: Resetting the running interface failed
        """
        with self._audit("init", ifname, {}) as tracker:
            document = self.load()
            if ifname not in self.interfaces(None):
                raise InterfaceNotFound(ifname, "live interfaces")

            self._snapshot_before(tracker, document, ifname)
            init_interface(document, ifname)
            result = self.pipeline.commit(document)

            self.runner("ifconfig", [ifname, "0.0.0.0"])
            self.runner("ifconfig", [ifname, "up"])

            tracker.snapshot("after", InterfaceView().to_dict())
            return result

    def set(self, ifname: str, view: InterfaceView) -> CommitResult:
        """
        Replace all settings of an interface.

        Existing addresses, gateway and nameservers of the interface are
        overwritten, not merged.

        Raises:
            ValidationError: The edit is invalid; nothing was written
            ConfigNotFound: No configuration file exists
            CommitFailure: Writing or applying the configuration failed
        """
        with self._audit("set", ifname, view.to_dict()) as tracker:
            document = self.load()
            self.validator.validate(document, ifname, view).raise_for_errors()

            self._snapshot_before(tracker, document, ifname)
            set_interface(document, ifname, view.to_config())
            result = self.pipeline.commit(document)

            tracker.snapshot("after", view.to_dict())
            return result

    def get(self, ifname: Optional[str] = None) -> Optional[list[tuple[str, InterfaceView]]]:
        """
        Get interface settings.

        Args:
            ifname: One interface, or None for all of them

        Returns:
            (name, view) pairs in name order, or None if ``ifname`` is
            not configured
        """
        document = self.load()
        if ifname is None:
            return [
                (name, InterfaceView.from_config(config))
                for name, config in document.ethernets
            ]

        config = document.interface(ifname)
        if config is None:
            return None
        return [(ifname, InterfaceView.from_config(config))]

    def delete(self, ifname: str, view: InterfaceView) -> CommitResult:
        """
        Remove addresses, the gateway or nameservers from an interface.

        Removed addresses are also deleted from the running interface. A
        failure there (usually: the address was never assigned) is logged
        and ignored.

        Raises:
            ConfigNotFound: No configuration file exists
            InterfaceNotFound: The interface is not configured
            CommitFailure: Writing or applying the configuration failed
        """
        with self._audit("delete", ifname, view.to_dict()) as tracker:
            document = self.load()
            self._snapshot_before(tracker, document, ifname)
            subtract_interface(document, ifname, view)
            result = self.pipeline.commit(document)

            for address in view.addresses or []:
                try:
                    self.runner("ip", ["addr", "del", address, "dev", ifname])
                except CommandError as e:
                    logger.warning(f"Could not remove {address} from running {ifname}: {e}")

            tracker.snapshot("after", InterfaceView.from_config(document.interface(ifname)).to_dict())
            return result

    def list_interfaces(self, prefix: Optional[str] = None) -> list[str]:
        """Names of the host's live interfaces, optionally filtered by prefix."""
        return self.interfaces(prefix)

    # --- helpers ---

    def _snapshot_before(self, tracker: ChangeTracker, document: NetplanDocument, ifname: str) -> None:
        config = document.interface(ifname)
        if config is not None:
            tracker.snapshot("before", InterfaceView.from_config(config).to_dict())

    @contextmanager
    def _audit(self, operation: str, ifname: str, parameters: dict):
        """Time an operation and write its audit record, success or not."""
        tracker = ChangeTracker(ifname)
        try:
            with timed_section_sync(f"netplan_{operation}", subject=ifname):
                yield tracker
        except Exception as e:
            tracker.log_change(operation, parameters, success=False, error=str(e))
            raise
        tracker.log_change(
            operation,
            parameters,
            success=True,
            after_state=tracker.get_snapshot("after"),
        )
        logger.info(f"{operation} {ifname}: done")
