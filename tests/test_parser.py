"""Tests for package specifier parsing."""

import os

import pytest

from common.errors import SpecifierError
from constants import EndpointType
from versioning.parser import is_local_file_scheme, is_uri_scheme, parse


class TestSchemes:
    """Scheme detection helpers."""

    @pytest.mark.parametrize("value", ["./a", "../a/b.zip", "/abs/pkg", "~/pkg"])
    def test_local_paths(self, value):
        assert is_local_file_scheme(value)

    @pytest.mark.parametrize("value", ["er", "@scope/x", "github:a/b"])
    def test_not_local_paths(self, value):
        assert not is_local_file_scheme(value)

    def test_uri_scheme(self):
        assert is_uri_scheme("github:wuhy/edp-build-versioning")
        assert is_uri_scheme("wuhy/edp-build-versioning")
        assert is_uri_scheme("https://host/a.tgz")
        assert not is_uri_scheme("^1.2.0")
        assert not is_uri_scheme("myer=er")


class TestParse:
    """Specifier forms and their precedence."""

    def test_empty_specifier(self):
        descriptor = parse("")
        assert descriptor.is_empty
        assert descriptor.name is None
        assert descriptor.endpoint is None

    def test_name_only_uses_default_endpoint(self):
        descriptor = parse("er")
        assert descriptor.name == "er"
        assert descriptor.version is None
        assert descriptor.endpoint.type is EndpointType.NPM
        assert descriptor.explicit_endpoint is False

    def test_name_with_range(self):
        descriptor = parse("er@^3.1.0")
        assert descriptor.name == "er"
        assert descriptor.version == "^3.1.0"

    def test_alias(self):
        descriptor = parse("myer=er", support_alias=True)
        assert descriptor.name == "er"
        assert descriptor.alias_name == "myer"
        assert descriptor.version is None
        assert descriptor.endpoint.type is EndpointType.NPM

    def test_alias_with_version(self):
        descriptor = parse("myer=er@2.0.0", support_alias=True)
        assert descriptor.alias_name == "myer"
        assert descriptor.name == "er"
        assert descriptor.version == "2.0.0"

    def test_alias_ignored_without_support(self):
        descriptor = parse("er@1.0.0")
        assert descriptor.alias_name is None

    def test_github_endpoint(self):
        descriptor = parse("github:wuhy/edp-build-versioning")
        assert descriptor.endpoint.type is EndpointType.GITHUB
        assert descriptor.endpoint.value == "wuhy"
        assert descriptor.name == "edp-build-versioning"
        assert descriptor.version is None
        assert descriptor.explicit_endpoint is True

    def test_owner_shorthand_is_github_with_ref(self):
        descriptor = parse("wuhy/edp-build-versioning#0.2.0")
        assert descriptor.endpoint.type is EndpointType.GITHUB
        assert descriptor.endpoint.value == "wuhy"
        assert descriptor.name == "edp-build-versioning"
        assert descriptor.version == "0.2.0"

    def test_gitlab_endpoint(self):
        descriptor = parse("gitlab:team/widget@1.2.0")
        assert descriptor.endpoint.type is EndpointType.GITLAB
        assert descriptor.endpoint.value == "team"
        assert descriptor.name == "widget"
        assert descriptor.version == "1.2.0"

    def test_scoped_name(self):
        descriptor = parse("@scope/name@1.0.0")
        assert descriptor.name == "@scope/name"
        assert descriptor.version == "1.0.0"
        assert descriptor.endpoint.type is EndpointType.NPM

    def test_scoped_name_without_version(self):
        descriptor = parse("@scope/name")
        assert descriptor.name == "@scope/name"
        assert descriptor.version is None

    def test_explicit_npm_endpoint(self):
        descriptor = parse("npm:er@1.0.0")
        assert descriptor.endpoint.type is EndpointType.NPM
        assert descriptor.name == "er"
        assert descriptor.explicit_endpoint is True

    def test_owner_path_on_registry_endpoint_raises(self):
        with pytest.raises(SpecifierError):
            parse("npm:owner/name")

    def test_unknown_endpoint_raises(self):
        with pytest.raises(SpecifierError):
            parse("svn:owner/name")

    def test_local_path(self, tmp_path):
        target = tmp_path / "pkg"
        descriptor = parse(str(target))
        assert descriptor.endpoint.type is EndpointType.LOCAL
        assert descriptor.endpoint.value == str(target)
        assert descriptor.name is None

    def test_relative_local_path_is_absolute(self):
        descriptor = parse("./vendor/pkg.zip")
        assert descriptor.endpoint.type is EndpointType.LOCAL
        assert os.path.isabs(descriptor.endpoint.value)

    def test_file_endpoint_with_name(self):
        descriptor = parse("file:../a/b.zip er@2.1.0")
        assert descriptor.endpoint.type is EndpointType.LOCAL
        assert descriptor.endpoint.value.endswith(os.path.join("a", "b.zip"))
        assert descriptor.name == "er"
        assert descriptor.version == "2.1.0"

    def test_http_url(self):
        url = "https://example.com/dist/pkg-1.0.0.tgz"
        descriptor = parse(url)
        assert descriptor.endpoint.type is EndpointType.URL
        assert descriptor.endpoint.value == url

    def test_git_url(self):
        descriptor = parse("git://git.example.com/team/widget.git#dev")
        assert descriptor.endpoint.type is EndpointType.GITLAB
        assert descriptor.endpoint.domain == "http://git.example.com"
        assert descriptor.endpoint.value == "team"
        assert descriptor.name == "widget"
        assert descriptor.version == "dev"

    def test_git_ssh_url(self):
        descriptor = parse("git+ssh://git@git.example.com:group/sub/widget.git#1.0.0")
        assert descriptor.endpoint.type is EndpointType.GITLAB
        assert descriptor.endpoint.domain == "http://git.example.com"
        assert descriptor.endpoint.value == "group/sub"
        assert descriptor.name == "widget"
        assert descriptor.version == "1.0.0"

    def test_git_https_url_without_ref(self):
        descriptor = parse("git+https://git.example.com/team/widget.git")
        assert descriptor.endpoint.domain == "https://git.example.com"
        assert descriptor.version is None

    def test_malformed_git_url_raises(self):
        with pytest.raises(SpecifierError):
            parse("git+ftp://host/x")

    def test_escaped_separator(self):
        descriptor = parse("a\\@b@1.0.0")
        assert descriptor.name == "a@b"
        assert descriptor.version == "1.0.0"
