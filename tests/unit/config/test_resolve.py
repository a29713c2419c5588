"""End-to-end resolution: decode, prepare, cross-section rules, aggregation."""

from datetime import timedelta
import warnings

import pytest

from kiln import resolve
from kiln.builders import AmazonEBSConfig, LXCBuilderConfig
from kiln.config import FieldOrigin, Origin, load_env, load_file
from kiln.config.core import builder_class
from kiln.errors import AggregateError, ConfigurationError, InterpolationError

pytestmark = pytest.mark.unit


class TestResolveSuccess:
    """A valid fragment sequence yields a defaulted configuration."""

    def test_amazon_ebs_defaults(self, ebs_fragment, context):
        cfg = resolve("amazon-ebs", [ebs_fragment], context=context)

        assert isinstance(cfg, AmazonEBSConfig)
        assert cfg.ami.ami_name == "web-1704164645"
        assert cfg.run.shutdown_behavior == "stop"
        assert cfg.run.windows_password_timeout == timedelta(minutes=20)
        assert cfg.run.temporary_security_group_source_cidrs == ["0.0.0.0/0"]
        assert cfg.communicator.communicator == "ssh"
        assert cfg.communicator.ssh_port == 22
        assert cfg.communicator.ssh_timeout == timedelta(minutes=5)
        assert cfg.communicator.ssh_temporary_key_pair_name == f"kiln_{context.build_uuid}"
        assert cfg.build.builder_type == "amazon-ebs"
        assert cfg.build.on_error == "cleanup"

    def test_builder_class_is_accepted(self, ebs_fragment):
        assert isinstance(resolve(AmazonEBSConfig, [ebs_fragment]), AmazonEBSConfig)

    def test_context_is_derived_from_fragments(self, tmp_path):
        config_file = tmp_path / "lxc.conf"
        config_file.write_text("")

        cfg = resolve(
            "lxc",
            [
                {"build_name": "base", "user_variables": {"tpl": "ubuntu"}},
                {"template_name": "{{ user('tpl') }}", "config_file": str(config_file)},
            ],
        )

        assert isinstance(cfg, LXCBuilderConfig)
        assert cfg.lxc.container_name == "kiln-base"
        assert cfg.lxc.template_name == "ubuntu"
        assert cfg.output.output_directory == "output-base"

    def test_explain_returns_sources(self, ebs_fragment, monkeypatch):
        monkeypatch.setenv("KILN_INSTANCE_TYPE", "m5.large")

        cfg, sources = resolve(
            "amazon-ebs", [ebs_fragment, load_env(AmazonEBSConfig)], explain=True
        )

        assert cfg.run.instance_type == "m5.large"
        assert sources["instance_type"].origin is Origin.ENV
        assert sources["region"].origin is Origin.OVERRIDES
        assert "ssh_port" not in sources

    def test_provider_env_fallback_and_explicit_precedence(self, ebs_fragment, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "ap-south-1")
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAEXAMPLE")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "s3cret")
        without_region = {k: v for k, v in ebs_fragment.items() if k != "region"}

        assert resolve("amazon-ebs", [without_region]).access.region == "ap-south-1"
        cfg = resolve("amazon-ebs", [ebs_fragment])
        assert cfg.access.region == "us-east-1"
        assert cfg.access.access_key == "AKIAEXAMPLE"


class TestResolveFailure:
    """Every problem is reported together."""

    def test_unknown_builder(self):
        with pytest.raises(ConfigurationError, match="Unknown builder type 'qemu'") as exc:
            resolve("qemu", [])
        assert "amazon-ebs" in (exc.value.hint or "")

    def test_all_errors_in_component_order(self):
        with pytest.raises(AggregateError) as exc:
            resolve("amazon-ebs", [{}])

        assert exc.value.messages == [
            "access: a region must be specified",
            "ami: ami_name must be specified",
            "run: A source_ami or source_ami_filter must be specified",
            "run: either instance_type or spot_instance_types must be specified",
            "communicator: an ssh_username must be specified",
        ]

    def test_decode_and_validation_errors_are_reported_together(self, ebs_fragment):
        broken = {**ebs_fragment, "regoin": "x", "block_duration_minutes": 90}

        with pytest.raises(AggregateError) as exc:
            resolve("amazon-ebs", [broken])

        assert exc.value.messages == [
            "decode: unknown configuration key 'regoin'",
            "run: block_duration_minutes must be multiple of 60",
        ]
        assert exc.value.errors[0].hint == "Did you mean 'region'?"

    def test_interpolation_error_is_decode_error(self, ebs_fragment):
        with pytest.raises(AggregateError) as exc:
            resolve("amazon-ebs", [{**ebs_fragment, "ami_name": "{{ nope }}"}])

        first = exc.value.errors[0]
        assert isinstance(first, InterpolationError)
        assert exc.value.entries[0].component == "decode"
        # The dropped key then fails the required-field rule as well.
        assert "ami: ami_name must be specified" in exc.value.messages

    def test_template_runtime_failures_are_aggregated(self, ebs_fragment):
        with pytest.raises(AggregateError) as exc:
            resolve("amazon-ebs", [{**ebs_fragment, "ami_name": "{{ 1 / 0 }}"}])

        decode_messages = [m for m in exc.value.messages if m.startswith("decode: ")]
        assert len(decode_messages) == 1
        assert decode_messages[0].startswith(
            "decode: ami_name: error rendering '{{ 1 / 0 }}'"
        )
        assert isinstance(exc.value.errors[0], InterpolationError)

    def test_root_rules_are_attributed_to_builder(self, ebs_fragment):
        with pytest.raises(AggregateError) as exc:
            resolve("amazon-ebs", [{**ebs_fragment, "ssh_interface": "carrier_pigeon"}])

        assert exc.value.messages == ["amazon-ebs: Unknown interface type: carrier_pigeon"]

    def test_same_input_same_report(self):
        def messages():
            with pytest.raises(AggregateError) as exc:
                resolve("cloudstack", [{"source_iso": "iso-1", "source_template": "t-1"}])
            return exc.value.messages

        assert messages() == messages()


class TestAdvisories:
    """Non-fatal output: warnings and the debug audit."""

    def test_builder_warnings_are_emitted(self, existing_file):
        with pytest.warns(UserWarning, match="shutdown_command was not specified"):
            resolve(
                "virtualbox-ovf",
                [{"source_path": existing_file, "ssh_username": "vagrant"}],
            )

    def test_no_warning_when_shutdown_command_set(self, existing_file):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            resolve(
                "virtualbox-ovf",
                [
                    {
                        "source_path": existing_file,
                        "ssh_username": "vagrant",
                        "shutdown_command": "sudo poweroff",
                    }
                ],
            )

    def test_debug_audit_is_redacted(self, ebs_fragment, monkeypatch):
        monkeypatch.setenv("KILN_DEBUG_CONFIG", "1")

        with pytest.warns(UserWarning, match="Config audit") as record:
            resolve("amazon-ebs", [{**ebs_fragment, "secret_key": "hunter2", "access_key": "AKIA"}])

        text = "\n".join(str(w.message) for w in record)
        assert "hunter2" not in text
        assert "secret_key: overrides [REDACTED]" in text
        assert "ssh_port: default" in text


def test_builder_class_passes_classes_through():
    assert builder_class(AmazonEBSConfig) is AmazonEBSConfig
    assert builder_class("amazon-ebs") is AmazonEBSConfig


def test_file_fragments_carry_labels(tmp_path, ebs_fragment):
    path = tmp_path / "web.toml"
    path.write_text('instance_type = "c5.large"\n')

    cfg, sources = resolve("amazon-ebs", [ebs_fragment, load_file(path)], explain=True)

    assert cfg.run.instance_type == "c5.large"
    assert sources["instance_type"] == FieldOrigin(Origin.FILE, label=str(path), index=1)
