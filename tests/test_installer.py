"""Tests for the install engine against an in-memory registry."""

import json
import os

from common.errors import DownloadFailure
from engine.installer import Installer
from engine.session import InstallSession
from project.node import to_package, to_package_list
from project.project import Project
from registry import archive
from versioning.models import InstallOptions, InstallState


def installed_version(root, name):
    with open(os.path.join(str(root), "dep", name, "package.json"), encoding="utf-8") as fh:
        return json.load(fh)["version"]


def run_install(root, specs, options=None, prompt=None, session=None):
    project = Project(str(root))
    installer = Installer(project, session=session, prompt=prompt or (lambda question: True))
    nodes = [to_package(spec) for spec in specs]
    if session is not None:
        session.init_expected_versions(nodes)
    installer.install_all(nodes, options or InstallOptions())
    return project, installer, nodes


class TestInstallAll:
    """Resolution over a dependency tree."""

    def test_shared_dependency_resolved_once(self, project_dir, fake_registry):
        fake_registry.packages = {
            "A": {"1.0.0": {"B": "^1.0.0"}},
            "C": {"1.0.0": {"B": "^1.1.0"}},
            "B": {"1.0.0": {}, "1.2.0": {}},
        }
        _, installer, (a, c) = run_install(project_dir, ["A", "C"])

        assert fake_registry.downloads == ["A@1.0.0", "B@1.2.0", "C@1.0.0"]
        b_of_a, b_of_c = a.dependencies[0], c.dependencies[0]
        assert b_of_a.install_version == "1.2.0"
        assert b_of_a.new_installed
        assert b_of_c.already_installed
        assert b_of_c.install_version == "1.2.0"
        assert installed_version(project_dir, "B") == "1.2.0"
        assert not installer.failures

    def test_repeated_request_is_mirrored(self, project_dir, fake_registry):
        fake_registry.packages = {
            "A": {"1.0.0": {"B": "^1.0.0"}},
            "D": {"1.0.0": {"B": "^1.0.0"}},
            "B": {"1.0.0": {}},
        }
        _, _, (a, d) = run_install(project_dir, ["A", "D"])

        mirror = d.dependencies[0]
        assert mirror.is_mirror()
        assert mirror.get_real_node() is a.dependencies[0]
        assert fake_registry.downloads.count("B@1.0.0") == 1

    def test_second_run_downloads_nothing(self, project_dir, fake_registry):
        fake_registry.packages = {
            "A": {"1.0.0": {"B": "^1.0.0"}},
            "B": {"1.0.0": {}},
        }
        run_install(project_dir, ["A"])
        downloads = list(fake_registry.downloads)

        _, _, (a,) = run_install(project_dir, ["A"])
        assert fake_registry.downloads == downloads
        assert a.install_state is InstallState.INSTALLED
        assert a.already_installed
        assert a.dependencies[0].already_installed

    def test_failure_does_not_stop_run(self, project_dir, fake_registry, caplog):
        fake_registry.packages = {"A": {"1.0.0": {}}}
        with caplog.at_level("WARNING"):
            _, installer, (missing, a) = run_install(project_dir, ["missing", "A"])

        assert missing.install_state is InstallState.FAILED
        assert missing.failure_reason.startswith("No matched version for missing")
        assert a.install_state is InstallState.INSTALLED
        assert len(installer.failures) == 1
        assert "install npm:missing fail" in caplog.text

    def test_no_matching_version(self, project_dir, fake_registry):
        fake_registry.packages = {"A": {"1.0.0": {}}}
        _, _, (a,) = run_install(project_dir, ["A@^2.0.0"])
        assert a.install_state is InstallState.FAILED
        assert "candidates = 1.0.0" in a.failure_reason

    def test_ignored_dependency_is_skipped(self, project_dir, fake_registry):
        with open(str(project_dir / "package.json"), "w", encoding="utf-8") as fh:
            json.dump({"ignoreDependencies": ["B"]}, fh)
        fake_registry.packages = {"A": {"1.0.0": {"B": "^1.0.0"}}, "B": {"1.0.0": {}}}

        _, _, (a,) = run_install(project_dir, ["A"])
        assert a.dependencies == []
        assert fake_registry.downloads == ["A@1.0.0"]

    def test_temp_dirs_removed(self, project_dir, fake_registry, monkeypatch):
        created = []
        original = archive.make_temp_dir

        def tracking_temp_dir(*args, **kwargs):
            path = original(*args, **kwargs)
            created.append(path)
            return path

        monkeypatch.setattr(archive, "make_temp_dir", tracking_temp_dir)
        fake_registry.packages = {"A": {"1.0.0": {}}}
        run_install(project_dir, ["A"])
        assert created
        assert not any(os.path.exists(path) for path in created)

    def test_failed_download_removes_temp_dir(self, project_dir, monkeypatch):
        created = []
        original = archive.make_temp_dir

        def tracking_temp_dir(*args, **kwargs):
            path = original(*args, **kwargs)
            created.append(path)
            return path

        def broken_download(url, target_file, context, headers=None, shasum=None):
            raise DownloadFailure(f"download {url} fail: status 500")

        monkeypatch.setattr(archive, "make_temp_dir", tracking_temp_dir)
        monkeypatch.setattr("registry.base.download_file", broken_download)
        _, installer, (node,) = run_install(project_dir, ["https://host/dist/widget-1.0.0.tgz"])

        assert node.install_state is InstallState.FAILED
        assert "status 500" in node.failure_reason
        assert len(installer.failures) == 1
        assert len(created) == 1
        assert not os.path.exists(created[0])

    def test_unparsable_dependency_does_not_stop_run(self, project_dir, fake_registry):
        fake_registry.packages = {
            "A": {"1.0.0": {"bad": "git+ftp://host/x", "B": "^1.0.0"}},
            "B": {"1.0.0": {}},
            "C": {"1.0.0": {}},
        }
        _, installer, (a, c) = run_install(project_dir, ["A", "C"])

        bad, b = a.dependencies
        assert bad.install_state is InstallState.FAILED
        assert "unrecognized git url" in bad.failure_reason
        assert b.install_state is InstallState.INSTALLED
        assert c.install_state is InstallState.INSTALLED
        assert fake_registry.downloads == ["A@1.0.0", "B@1.0.0", "C@1.0.0"]
        assert len(installer.failures) == 1
        assert "bad" in installer.failures[0]


class TestReplace:
    """Replacing an installed version."""

    def setup_packages(self, fake_registry, project_dir):
        fake_registry.packages = {"B": {"1.0.0": {}, "1.2.0": {}}}
        run_install(project_dir, ["B@1.0.0"])
        assert installed_version(project_dir, "B") == "1.0.0"

    def test_declined_replace_is_skipped(self, project_dir, fake_registry):
        self.setup_packages(fake_registry, project_dir)
        questions = []

        def decline(question):
            questions.append(question)
            return False

        _, installer, (b,) = run_install(project_dir, ["B@^1.2.0"], prompt=decline)
        assert questions == ["Upgrade B 1.0.0 -> 1.2.0 [y/n]"]
        assert b.install_state is InstallState.SKIPPED
        assert installed_version(project_dir, "B") == "1.0.0"
        assert not installer.failures

    def test_accepted_replace(self, project_dir, fake_registry):
        self.setup_packages(fake_registry, project_dir)
        project, _, (b,) = run_install(project_dir, ["B@^1.2.0"])
        assert b.install_state is InstallState.INSTALLED
        assert b.install_version == "1.2.0"
        assert b.old_version == "1.0.0"
        assert installed_version(project_dir, "B") == "1.2.0"
        assert [node.install_version for node in project.installed] == ["1.2.0"]

    def test_no_confirm_skips_prompt(self, project_dir, fake_registry):
        self.setup_packages(fake_registry, project_dir)

        def fail_prompt(question):
            raise AssertionError(question)

        _, _, (b,) = run_install(
            project_dir, ["B@^1.2.0"], options=InstallOptions(confirm=False), prompt=fail_prompt
        )
        assert b.installed

    def test_explicit_degrade(self, project_dir, fake_registry):
        fake_registry.packages = {"B": {"1.0.0": {}, "1.2.0": {}}}
        run_install(project_dir, ["B"])
        questions = []

        def accept(question):
            questions.append(question)
            return True

        _, _, (b,) = run_install(project_dir, ["B@1.0.0"], prompt=accept, session=InstallSession())
        assert questions == ["Degrade B 1.2.0 -> 1.0.0 [y/n]"]
        assert b.degrade
        assert installed_version(project_dir, "B") == "1.0.0"


class TestLockedInstall:
    """Installs pinned by the lock section."""

    def test_lock_pins_version(self, project_dir, fake_registry):
        fake_registry.packages = {"B": {"1.0.0": {}, "1.2.0": {}}}
        lock = {"B": {"version": "1.0.0", "resolved": "https://fake/B-1.0.0.tgz"}}
        project = Project(str(project_dir))
        nodes = to_package_list({"B": "^1.0.0"}, lock)

        Installer(project).install_all(nodes, InstallOptions(use_lock_info=True))
        assert fake_registry.downloads == ["B@1.0.0"]
        assert nodes[0].get_resolved_url() == "https://fake/B-1.0.0.tgz"
        assert installed_version(project_dir, "B") == "1.0.0"

    def test_without_lock_info_takes_newest(self, project_dir, fake_registry):
        fake_registry.packages = {"B": {"1.0.0": {}, "1.2.0": {}}}
        lock = {"B": {"version": "1.0.0", "resolved": "https://fake/B-1.0.0.tgz"}}
        project = Project(str(project_dir))
        nodes = to_package_list({"B": "^1.0.0"}, lock)

        Installer(project).install_all(nodes, InstallOptions())
        assert fake_registry.downloads == ["B@1.2.0"]
