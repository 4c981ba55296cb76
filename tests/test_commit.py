"""Tests for the commit/apply pipeline, including partial failures."""
from pathlib import Path

import pytest

from mcp_host_network.netplan import commit as commit_module
from mcp_host_network.netplan import (
    CommitFailure,
    CommitPipeline,
    CommitStep,
    InterfaceConfig,
    NetplanDocument,
    dump_document,
    load_directory,
)

from conftest import FakeRunner

BASE = "network:\n  version: 2\n  ethernets:\n    eth0:\n      dhcp4: true\n"
CLOUD = "network:\n  ethernets:\n    eth1:\n      addresses:\n      - 10.0.0.5/24\n"


@pytest.fixture
def document():
    return NetplanDocument(
        version=2,
        ethernets=[("eth0", InterfaceConfig(addresses=["192.168.1.5/24"]))],
    )


@pytest.fixture
def pipeline(settings, runner):
    return CommitPipeline(settings, runner)


def file_names(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir())


class TestCommit:
    """Tests for a successful commit."""

    def test_empty_directory_uses_default_name(self, pipeline, document, netplan_dir):
        result = pipeline.commit(document)

        assert result.primary == netplan_dir / "01-netcfg.yaml"
        assert result.removed == []
        assert result.primary.read_text() == dump_document(document)

    def test_first_file_becomes_primary(self, pipeline, document, write_config, netplan_dir):
        write_config("10-base.yaml", BASE)
        write_config("50-cloud-init.yaml", CLOUD)

        result = pipeline.commit(document)

        assert result.primary.name == "10-base.yaml"
        assert result.removed == [netplan_dir / "50-cloud-init.yaml"]
        assert file_names(netplan_dir) == ["10-base.yaml"]

    def test_primary_is_overwritten_not_appended(self, pipeline, document, write_config):
        path = write_config("01-netcfg.yaml", BASE + "# trailing comment\n" * 20)

        pipeline.commit(document)

        assert path.read_text() == dump_document(document)

    def test_staged_file_is_removed(self, pipeline, document, settings):
        pipeline.commit(document)
        assert list(settings.staging_dir.iterdir()) == []

    def test_apply_command_runs_last(self, pipeline, document, runner):
        pipeline.commit(document)
        assert runner.calls == [("netplan", "apply")]

    def test_custom_apply_command(self, settings, document):
        settings.apply_command = ["netplan", "try", "--timeout", "30"]
        runner = FakeRunner()

        CommitPipeline(settings, runner).commit(document)

        assert runner.calls == [("netplan", "try", "--timeout", "30")]

    def test_commit_is_idempotent(self, pipeline, write_config, netplan_dir):
        """Committing the loaded view of a single file leaves it byte-identical."""
        path = write_config("01-netcfg.yaml", dump_document(NetplanDocument(
            version=2,
            ethernets=[("eth0", InterfaceConfig(dhcp4=True))],
        )))
        before = path.read_bytes()

        for _ in range(2):
            result = pipeline.commit(load_directory(netplan_dir))
            assert result.primary == path
            assert result.removed == []

        assert file_names(netplan_dir) == ["01-netcfg.yaml"]
        assert path.read_bytes() == before


class TestPartialFailure:
    """Each failing step leaves earlier steps done and later ones undone."""

    def test_enumerate_failure_writes_nothing(
        self, pipeline, document, settings, write_config, netplan_dir, runner, monkeypatch
    ):
        write_config("10-base.yaml", BASE)

        def unreadable(directory, suffixes):
            raise PermissionError(13, "Permission denied", str(directory))

        monkeypatch.setattr(commit_module, "list_config_files", unreadable)

        with pytest.raises(CommitFailure) as exc:
            pipeline.commit(document)

        assert exc.value.step == CommitStep.ENUMERATE
        assert exc.value.path == netplan_dir
        assert file_names(netplan_dir) == ["10-base.yaml"]
        assert (netplan_dir / "10-base.yaml").read_text() == BASE
        assert list(settings.staging_dir.iterdir()) == []
        assert runner.calls == []

    def test_stage_failure_leaves_directory_untouched(self, settings, document, write_config, netplan_dir, tmp_path):
        write_config("10-base.yaml", BASE)
        write_config("50-cloud-init.yaml", CLOUD)
        settings.staging_dir = tmp_path / "missing"
        runner = FakeRunner()

        with pytest.raises(CommitFailure) as exc:
            CommitPipeline(settings, runner).commit(document)

        assert exc.value.step == CommitStep.STAGE
        assert exc.value.path == tmp_path / "missing" / "10-base.yaml"
        assert (netplan_dir / "10-base.yaml").read_text() == BASE
        assert file_names(netplan_dir) == ["10-base.yaml", "50-cloud-init.yaml"]
        assert runner.calls == []

    def test_stage_refuses_symlink(self, pipeline, document, settings, netplan_dir, tmp_path, runner):
        victim = tmp_path / "victim"
        victim.write_text("untouched\n")
        (settings.staging_dir / "01-netcfg.yaml").symlink_to(victim)

        with pytest.raises(CommitFailure) as exc:
            pipeline.commit(document)

        assert exc.value.step == CommitStep.STAGE
        assert victim.read_text() == "untouched\n"
        assert file_names(netplan_dir) == []
        assert runner.calls == []

    def test_unstage_failure_leaves_staged_file_and_secondaries(
        self, pipeline, document, settings, write_config, netplan_dir, runner, monkeypatch
    ):
        write_config("10-base.yaml", BASE)
        write_config("50-cloud-init.yaml", CLOUD)

        real_unlink = Path.unlink

        def unlink(self, *args, **kwargs):
            if self.parent == settings.staging_dir:
                raise PermissionError(13, "Permission denied", str(self))
            return real_unlink(self, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", unlink)

        with pytest.raises(CommitFailure) as exc:
            pipeline.commit(document)

        staged = settings.staging_dir / "10-base.yaml"
        assert exc.value.step == CommitStep.UNSTAGE
        assert exc.value.path == staged
        assert staged.read_text() == dump_document(document)
        assert (netplan_dir / "10-base.yaml").read_text() == dump_document(document)
        assert file_names(netplan_dir) == ["10-base.yaml", "50-cloud-init.yaml"]
        assert runner.calls == []

    def test_promote_failure_leaves_staged_file(self, pipeline, document, settings, netplan_dir, runner):
        # A directory in the way of the primary file makes the copy fail
        (netplan_dir / "01-netcfg.yaml").mkdir()

        with pytest.raises(CommitFailure) as exc:
            pipeline.commit(document)

        assert exc.value.step == CommitStep.PROMOTE
        assert isinstance(exc.value.cause, OSError)
        staged = settings.staging_dir / "01-netcfg.yaml"
        assert staged.read_text() == dump_document(document)
        assert runner.calls == []

    def test_prune_failure_leaves_stale_secondary(
        self, pipeline, document, write_config, netplan_dir, runner, monkeypatch
    ):
        write_config("10-base.yaml", BASE)
        write_config("50-cloud-init.yaml", CLOUD)
        write_config("90-local.yaml", "network:\n  ethernets:\n    eth2:\n      dhcp4: true\n")

        real_unlink = Path.unlink

        def unlink(self, *args, **kwargs):
            if self.name == "90-local.yaml":
                raise PermissionError(13, "Permission denied", str(self))
            return real_unlink(self, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", unlink)

        with pytest.raises(CommitFailure) as exc:
            pipeline.commit(document)

        assert exc.value.step == CommitStep.PRUNE
        assert exc.value.path == netplan_dir / "90-local.yaml"
        # New primary written, first secondary gone, second still there
        assert file_names(netplan_dir) == ["10-base.yaml", "90-local.yaml"]
        assert (netplan_dir / "10-base.yaml").read_text() == dump_document(document)
        assert runner.calls == []

        # The next load folds the leftover file back in
        monkeypatch.undo()
        merged = load_directory(netplan_dir)
        assert merged.interface_names() == ["eth0", "eth2"]

    def test_apply_failure_leaves_written_config(self, settings, document, write_config, netplan_dir):
        write_config("10-base.yaml", BASE)
        write_config("50-cloud-init.yaml", CLOUD)
        runner = FakeRunner(fail=lambda cmd: cmd[0] == "netplan")

        with pytest.raises(CommitFailure) as exc:
            CommitPipeline(settings, runner).commit(document)

        assert exc.value.step == CommitStep.APPLY
        assert "apply" in str(exc.value)
        assert file_names(netplan_dir) == ["10-base.yaml"]
        assert (netplan_dir / "10-base.yaml").read_text() == dump_document(document)
