"""Tests for uninstalling packages with reference checks."""

import json
import os

import pytest

from common.fs_utils import remove_dir
from engine.uninstaller import Uninstaller
from project.project import Project
from report import format_uninstall_report
from versioning.models import UninstallStatus


def write_package(root, name, version="1.0.0", deps=None):
    pkg_dir = os.path.join(str(root), "dep", name)
    os.makedirs(pkg_dir, exist_ok=True)
    with open(os.path.join(pkg_dir, "package.json"), "w", encoding="utf-8") as fh:
        json.dump({"name": name, "version": version, "dependencies": deps or {}}, fh)


def write_manifest(root, deps):
    with open(os.path.join(str(root), "package.json"), "w", encoding="utf-8") as fh:
        json.dump({"dependencies": deps}, fh)


def exists(root, name):
    return os.path.isdir(os.path.join(str(root), "dep", name))


@pytest.fixture
def chain(tmp_path):
    """Project with A depending on B, A declared in the manifest."""
    write_manifest(tmp_path, {"A": "^1.0.0"})
    write_package(tmp_path, "A", deps={"B": "^1.0.0"})
    write_package(tmp_path, "B")
    return tmp_path


def uninstaller(root, answer=True, questions=None):
    def prompt(question):
        if questions is not None:
            questions.append(question)
        return answer
    return Uninstaller(Project(str(root)), prompt=prompt)


class TestUninstall:
    """Reference checks and cascading removal."""

    def test_referenced_package_is_blocked(self, chain, caplog):
        with caplog.at_level("WARNING"):
            result = uninstaller(chain).uninstall("B", confirm=False)
        (node,) = result
        assert not node.uninstalled
        assert node.blocked_by == "A"
        assert node.reason == "referenced by A"
        assert exists(chain, "B")
        assert "exist reference to package B from A" in caplog.text

    def test_cascade_removes_unused_dependencies(self, chain):
        result = uninstaller(chain).uninstall("A", confirm=False)
        assert [(node.name, node.uninstalled) for node in result] == [("A", True), ("B", True)]
        assert not exists(chain, "A")
        assert not exists(chain, "B")

    def test_cascade_keeps_manifest_declared(self, chain):
        write_manifest(chain, {"A": "^1.0.0", "B": "^1.0.0"})
        result = uninstaller(chain).uninstall("A", confirm=False)
        b = result[1]
        assert not b.uninstalled
        assert b.reason == "declared in manifest"
        assert b.referenced_by == "A@^1.0.0"
        assert exists(chain, "B")

    def test_cascade_keeps_shared_dependency(self, chain):
        write_package(chain, "D", deps={"B": "^1.0.0"})
        result = uninstaller(chain).uninstall("A", confirm=False)
        b = result[1]
        assert not b.uninstalled
        assert b.blocked_by == "D"
        assert exists(chain, "B")
        assert not exists(chain, "A")

    def test_transitive_reference_blocks(self, chain):
        write_package(chain, "C")
        write_package(chain, "B", deps={"C": "^1.0.0"})
        (node,) = uninstaller(chain).uninstall("C", confirm=False)
        assert node.blocked_by in ("A", "B")
        assert exists(chain, "C")

    def test_without_remove_dep(self, chain):
        result = uninstaller(chain).uninstall("A", remove_dep=False, confirm=False)
        assert [node.name for node in result] == ["A"]
        assert not exists(chain, "A")
        assert exists(chain, "B")

    def test_not_installed(self, chain):
        (node,) = uninstaller(chain).uninstall("nope", confirm=False)
        assert node.not_existed
        assert not node.uninstalled

    def test_confirm_declined(self, chain):
        questions = []
        (node,) = uninstaller(chain, answer=False, questions=questions).uninstall("A")
        assert questions == ["Confirm uninstall package A@1.0.0 [y/n]"]
        assert node.status is UninstallStatus.CANCELLED
        assert exists(chain, "A")

    def test_confirm_accepted_asks_once(self, chain):
        questions = []
        uninstaller(chain, questions=questions).uninstall("A")
        assert len(questions) == 1
        assert not exists(chain, "B")

    def test_veto(self, chain):
        result = uninstaller(chain).uninstall(
            "A", confirm=False, can_uninstall=lambda node: node.name != "B"
        )
        b = result[1]
        assert b.reason == "vetoed by caller"
        assert exists(chain, "B")
        assert not exists(chain, "A")

    def test_force_target_skips_reference_check(self, chain):
        engine = uninstaller(chain)
        target = engine.project.find_installed("B")
        (node,) = engine.uninstall(target, confirm=False, force_target=True)
        assert node.uninstalled
        assert not exists(chain, "B")

    def test_scope_directory_removed_when_empty(self, tmp_path):
        write_package(tmp_path, "@scope/C")
        (node,) = uninstaller(tmp_path).uninstall("@scope/C", confirm=False)
        assert node.uninstalled
        assert not os.path.exists(os.path.join(str(tmp_path), "dep", "@scope"))

    def test_scope_directory_kept_with_siblings(self, tmp_path):
        write_package(tmp_path, "@scope/C")
        write_package(tmp_path, "@scope/D")
        uninstaller(tmp_path).uninstall("@scope/C", confirm=False)
        assert exists(tmp_path, "@scope/D")

    def test_uninstall_names(self, chain):
        engine = uninstaller(chain)
        result = engine.uninstall_names(["B", "A"], confirm=False)
        names = [(outcome.name, outcome.uninstalled) for outcome in result]
        assert names == [("B", False), ("A", True), ("B", True)]
        assert result[0].blocked_by == "A"
        assert result[0].referenced_by is None
        assert result[2].referenced_by == "A@^1.0.0"

        lines = format_uninstall_report(engine.project, result).splitlines()
        assert lines == [
            "uninstall B@1.0.0 blocked: referenced by A",
            "uninstall A@^1.0.0 done",
            "uninstall B@1.0.0(referred by A@^1.0.0) done",
            "uninstall done",
        ]

    def test_shared_dependency_removed_after_its_referrers(self, chain):
        # A -> B, A -> C, C -> B
        write_package(chain, "A", deps={"B": "^1.0.0", "C": "^1.0.0"})
        write_package(chain, "C", deps={"B": "^1.0.0"})
        result = uninstaller(chain).uninstall("A", confirm=False)
        assert [(outcome.name, outcome.status) for outcome in result] == [
            ("A", UninstallStatus.REMOVED),
            ("B", UninstallStatus.REMOVED),
            ("C", UninstallStatus.REMOVED),
        ]
        assert not any(exists(chain, name) for name in ("A", "B", "C"))


class TestUninstallFailure:
    """A package that cannot be deleted stays installed and tracked."""

    def failing_remove(self, monkeypatch, name):
        def remove(path):
            if os.path.basename(path) == name:
                raise PermissionError(f"cannot remove {path}")
            remove_dir(path)

        monkeypatch.setattr("project.project.remove_dir", remove)

    def test_target_failure_stops_cascade(self, chain, monkeypatch):
        self.failing_remove(monkeypatch, "A")
        engine = uninstaller(chain)
        (outcome,) = engine.uninstall("A", confirm=False)

        assert outcome.status is UninstallStatus.FAILED
        assert "cannot remove" in outcome.reason
        assert exists(chain, "A")
        assert exists(chain, "B")
        assert engine.project.find_installed("A") is not None
        assert engine.project.find_installed("B") is not None

    def test_failed_dependency_keeps_its_dependencies(self, tmp_path, monkeypatch):
        write_manifest(tmp_path, {"A": "^1.0.0"})
        write_package(tmp_path, "A", deps={"B": "^1.0.0"})
        write_package(tmp_path, "B", deps={"C": "^1.0.0"})
        write_package(tmp_path, "C")
        self.failing_remove(monkeypatch, "B")
        engine = uninstaller(tmp_path)
        a, b, c = engine.uninstall("A", confirm=False)

        assert a.status is UninstallStatus.REMOVED
        assert b.status is UninstallStatus.FAILED
        assert c.status is UninstallStatus.BLOCKED
        assert c.blocked_by == "B"
        assert engine.project.find_installed("B") is not None
        assert exists(tmp_path, "B")
        assert exists(tmp_path, "C")

        text = format_uninstall_report(engine.project, [a, b, c])
        assert "uninstall B@1.0.0(referred by A@^1.0.0) fail: cannot remove" in text
