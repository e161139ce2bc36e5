"""Tests for recursive manifest resolution.

Covers the end-to-end behaviour of a resolution run against real directory
trees, with jsonnet replaced by a recording fake.
"""

from pathlib import Path

import pytest
import yaml

from jsonnetize.exceptions import (
    EmptyReferenceError,
    InvalidManifestError,
    ManifestNotFoundError,
    RenderError,
    ReplicationError,
)
from jsonnetize.replicator import Replicator, mirror_path
from jsonnetize.resolver import ManifestResolver, resolve_tree


def read_yaml(path):
    return yaml.safe_load(path.read_text())


class TestScenarios:
    """Whole-tree scenarios."""

    def test_literal_file_and_overlay_directory(
        self, make_tree, resolver, mirror_root, input_root
    ):
        make_tree(
            {
                "kustomization.yml": {"resources": ["base.yml", "overlay/"]},
                "base.yml": b"kind: Service\n# exact bytes \xe2\x9c\x93\n",
                "overlay/kustomization.yaml": {
                    "resources": ["patch.jsonnet"],
                    "namePrefix": "ov-",
                },
                "overlay/patch.jsonnet": "{}",
            }
        )

        resolver.resolve(Path("."))

        root = read_yaml(mirror_root / "kustomization.yml")
        assert root["resources"] == ["base.yml", "overlay/"]
        assert (mirror_root / "base.yml").read_bytes() == (
            input_root / "base.yml"
        ).read_bytes()

        nested = read_yaml(mirror_root / "overlay" / "kustomization.yaml")
        assert nested["resources"] == ["patch.jsonnet.yml"]
        assert nested["namePrefix"] == "ov-"
        assert (mirror_root / "overlay" / "patch.jsonnet.yml").exists()

    def test_template_resource_rewritten(
        self, make_tree, resolver, input_root, mirror_root, fake_renderer
    ):
        make_tree(
            {
                "kustomization.yml": {"resources": ["config.jsonnet"]},
                "config.jsonnet": "{}",
            }
        )

        resolver.resolve(Path("."))

        assert read_yaml(mirror_root / "kustomization.yml")["resources"] == [
            "config.jsonnet.yml"
        ]
        assert (mirror_root / "config.jsonnet.yml").is_file()
        assert fake_renderer.calls == [
            (input_root / "config.jsonnet", mirror_root / "config.jsonnet.yml")
        ]

    def test_remote_generator_kept(self, make_tree, resolver, mirror_root):
        make_tree(
            {"kustomization.yml": {"generators": ["https://example.com/plugin.yml"]}}
        )

        resolver.resolve(Path("."))

        assert read_yaml(mirror_root / "kustomization.yml")["generators"] == [
            "https://example.com/plugin.yml"
        ]
        assert sorted(p.name for p in mirror_root.iterdir()) == ["kustomization.yml"]


class TestListRewriting:
    def test_lengths_and_order_preserved(self, make_tree, resolver, mirror_root):
        make_tree(
            {
                "kustomization.yml": {
                    "resources": [
                        "a.yml",
                        "https://example.com/remote.yml",
                        "b.jsonnet",
                        "sub",
                    ],
                    "generators": ["gen.jsonnet", "gen.yml"],
                    "transformers": [
                        "t1.yml",
                        "https://example.com/t2.yml",
                        "t3.jsonnet",
                    ],
                },
                "a.yml": "a",
                "b.jsonnet": "{}",
                "sub/kustomization.yml": {"resources": []},
                "gen.jsonnet": "{}",
                "gen.yml": "g",
                "t1.yml": "t",
                "t3.jsonnet": "{}",
            }
        )

        resolver.resolve()

        written = read_yaml(mirror_root / "kustomization.yml")
        assert written["resources"] == [
            "a.yml",
            "https://example.com/remote.yml",
            "b.jsonnet.yml",
            "sub",
        ]
        assert written["generators"] == ["gen.jsonnet.yml", "gen.yml"]
        assert written["transformers"] == [
            "t1.yml",
            "https://example.com/t2.yml",
            "t3.jsonnet.yml",
        ]

    def test_other_keys_carried_through(self, make_tree, resolver, mirror_root):
        make_tree(
            {
                "kustomization.yml": {
                    "apiVersion": "kustomize.config.k8s.io/v1beta1",
                    "kind": "Kustomization",
                    "namespace": "demo",
                    "resources": ["a.yml"],
                    "images": [{"name": "app", "newTag": "1.2.3"}],
                },
                "a.yml": "a",
            }
        )

        resolver.resolve()

        written = read_yaml(mirror_root / "kustomization.yml")
        assert written["namespace"] == "demo"
        assert written["images"] == [{"name": "app", "newTag": "1.2.3"}]
        assert list(written) == [
            "apiVersion",
            "kind",
            "namespace",
            "resources",
            "images",
        ]

    def test_manifest_without_lists(self, make_tree, resolver, mirror_root):
        make_tree({"kustomization.yml": {"namePrefix": "x-"}})

        resolver.resolve()

        assert read_yaml(mirror_root / "kustomization.yml") == {"namePrefix": "x-"}


class TestRecursion:
    def test_deeply_nested_directories(self, make_tree, resolver, mirror_root):
        make_tree(
            {
                "kustomization.yml": {"resources": ["envs"]},
                "envs/kustomization.yml": {"resources": ["prod"]},
                "envs/prod/kustomization.yml": {"resources": ["app.jsonnet"]},
                "envs/prod/app.jsonnet": "{}",
            }
        )

        resolver.resolve()

        assert read_yaml(mirror_root / "envs" / "kustomization.yml")["resources"] == [
            "prod"
        ]
        assert read_yaml(mirror_root / "envs" / "prod" / "kustomization.yml")[
            "resources"
        ] == ["app.jsonnet.yml"]
        assert (mirror_root / "envs" / "prod" / "app.jsonnet.yml").exists()
        assert resolver.metrics.manifests_written == 3
        assert resolver.metrics.directories_recursed == 2

    def test_sibling_directory_via_parent_path(self, make_tree, resolver, mirror_root):
        make_tree(
            {
                "kustomization.yml": {"resources": ["overlays/prod"]},
                "overlays/prod/kustomization.yml": {"resources": ["../../base"]},
                "base/kustomization.yml": {"resources": ["svc.yml"]},
                "base/svc.yml": "svc",
            }
        )

        resolver.resolve()

        assert read_yaml(
            mirror_root / "overlays" / "prod" / "kustomization.yml"
        )["resources"] == ["../../base"]
        assert (mirror_root / "base" / "kustomization.yml").exists()
        assert (mirror_root / "base" / "svc.yml").read_text() == "svc"

    def test_directory_generator_is_not_recursed(self, make_tree, resolver):
        make_tree(
            {
                "kustomization.yml": {"generators": ["plugins"]},
                "plugins/kustomization.yml": {},
            }
        )

        with pytest.raises(ReplicationError):
            resolver.resolve()

    def test_cycle_detected(self, make_tree, resolver):
        make_tree(
            {
                "kustomization.yml": {"resources": ["a"]},
                "a/kustomization.yml": {"resources": [".."]},
            }
        )

        with pytest.raises(InvalidManifestError, match="cycle"):
            resolver.resolve()

    def test_shared_base_resolved_twice(self, make_tree, resolver, mirror_root):
        make_tree(
            {
                "kustomization.yml": {"resources": ["one", "two"]},
                "one/kustomization.yml": {"resources": ["../base"]},
                "two/kustomization.yml": {"resources": ["../base"]},
                "base/kustomization.yml": {"resources": ["cm.yml"]},
                "base/cm.yml": "cm",
            }
        )

        resolver.resolve()

        assert (mirror_root / "base" / "cm.yml").read_text() == "cm"
        assert resolver.metrics.manifests_written == 5


class TestReferencesOutsideRoot:
    """Bases above the kustomization root and absolute paths."""

    def test_overlay_with_base_above_root(self, make_tree, input_root, fake_renderer):
        make_tree(
            {
                "overlays/prod/kustomization.yml": {"resources": ["../../base"]},
                "base/kustomization.yml": {"resources": ["app.jsonnet", "svc.yml"]},
                "base/app.jsonnet": "{}",
                "base/svc.yml": "svc",
            }
        )
        overlay = input_root / "overlays" / "prod"
        output = input_root / "overlays" / "out"
        resolver = ManifestResolver(
            overlay,
            output,
            replicator=Replicator(overlay, output, renderer=fake_renderer),
        )

        resolver.resolve()

        base = input_root / "base"
        assert read_yaml(base / "kustomization.yml")["resources"] == [
            "app.jsonnet",
            "svc.yml",
        ]
        assert not (base / "app.jsonnet.yml").exists()

        mirrored_base = mirror_path(output, base)
        assert read_yaml(mirrored_base / "kustomization.yml")["resources"] == [
            "app.jsonnet.yml",
            "svc.yml",
        ]
        assert (mirrored_base / "app.jsonnet.yml").exists()
        assert (mirrored_base / "svc.yml").read_text() == "svc"
        assert read_yaml(mirror_path(output, overlay) / "kustomization.yml")[
            "resources"
        ] == ["../../base"]

    def test_absolute_directory_resource_is_resolved(
        self, make_tree, resolver, output_root, mirror_root, tmp_path
    ):
        shared = tmp_path / "shared"
        shared.mkdir()
        (shared / "kustomization.yml").write_text(
            yaml.safe_dump({"resources": ["app.jsonnet"]})
        )
        (shared / "app.jsonnet").write_text("{}")
        make_tree({"kustomization.yml": {"resources": [str(shared)]}})

        resolver.resolve()

        mirrored_shared = mirror_path(output_root, shared)
        assert read_yaml(mirror_root / "kustomization.yml")["resources"] == [
            str(mirrored_shared)
        ]
        assert read_yaml(mirrored_shared / "kustomization.yml")["resources"] == [
            "app.jsonnet.yml"
        ]
        assert (mirrored_shared / "app.jsonnet.yml").exists()
        assert resolver.metrics.templates_rendered == 1
        assert resolver.metrics.absolute_references == 1

    def test_absolute_generator_file_is_copied(
        self, make_tree, resolver, output_root, mirror_root, tmp_path
    ):
        plugin = tmp_path / "plugins" / "gen.yml"
        plugin.parent.mkdir()
        plugin.write_bytes(b"kind: Generator\n")
        make_tree({"kustomization.yml": {"generators": [str(plugin)]}})

        resolver.resolve()

        copied = mirror_path(output_root, plugin)
        assert read_yaml(mirror_root / "kustomization.yml")["generators"] == [
            str(copied)
        ]
        assert copied.read_bytes() == b"kind: Generator\n"


class TestErrors:
    def test_missing_root_manifest(self, resolver):
        with pytest.raises(ManifestNotFoundError):
            resolver.resolve()

    def test_missing_nested_manifest(self, make_tree, resolver):
        make_tree(
            {
                "kustomization.yml": {"resources": ["empty"]},
                "empty/readme.txt": "no manifest here",
            }
        )

        with pytest.raises(ManifestNotFoundError):
            resolver.resolve()

    def test_empty_entry_fails_before_any_write(
        self, make_tree, resolver, output_root, fake_renderer
    ):
        make_tree(
            {
                "kustomization.yml": {
                    "resources": ["a.yml", "b.jsonnet"],
                    "transformers": [""],
                },
                "a.yml": "a",
                "b.jsonnet": "{}",
            }
        )

        with pytest.raises(EmptyReferenceError):
            resolver.resolve()

        assert list(output_root.iterdir()) == []
        assert fake_renderer.calls == []

    def test_missing_file_reference(self, make_tree, resolver, mirror_root):
        make_tree({"kustomization.yml": {"resources": ["missing.yml"]}})

        with pytest.raises(ReplicationError):
            resolver.resolve()

        assert not (mirror_root / "kustomization.yml").exists()

    def test_render_failure_aborts_tree(
        self, make_tree, input_root, output_root, mirror_root
    ):
        make_tree(
            {
                "kustomization.yml": {"resources": ["sub", "after.yml"]},
                "sub/kustomization.yml": {"resources": ["bad.jsonnet"]},
                "sub/bad.jsonnet": "{",
                "after.yml": "after",
            }
        )

        def failing_renderer(source, destination):
            raise RenderError("jsonnet failed", returncode=1)

        resolver = ManifestResolver(
            input_root,
            output_root,
            replicator=Replicator(input_root, output_root, renderer=failing_renderer),
        )
        with pytest.raises(RenderError):
            resolver.resolve()

        assert not (mirror_root / "after.yml").exists()
        assert not (mirror_root / "kustomization.yml").exists()


class TestResolveTree:
    def test_uses_jsonnet_binary(self, make_tree, input_root, output_root, monkeypatch):
        make_tree(
            {
                "kustomization.yml": {"resources": ["x.jsonnet", "y.yml"]},
                "x.jsonnet": "{}",
                "y.yml": "y",
            }
        )
        calls = []

        def fake_render(source, destination, jsonnet_bin="jsonnet"):
            calls.append(jsonnet_bin)
            destination.write_text("rendered")

        monkeypatch.setattr("jsonnetize.replicator.render_jsonnet", fake_render)

        metrics = resolve_tree(input_root, output_root, jsonnet_bin="jsonnet-custom")

        assert calls == ["jsonnet-custom"]
        assert metrics.manifests_written == 1
        assert metrics.templates_rendered == 1
        assert metrics.files_copied == 1
