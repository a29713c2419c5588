"""Invariants that hold for any input, checked with generated fragments.

Layer 2: Architectural Invariants
- Resolving a resolved configuration changes nothing.
- Rendered values that look like templates survive re-resolution.
- Later fragments win; accumulating fields keep earlier keys.
- Block device derivation yields exactly one mapping kind per device.
- Failure reports are deterministic.
"""

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from kiln import resolve
from kiln.builders import AmazonEBSConfig
from kiln.builders.amazon import BlockDevice, DeviceKind, build_block_devices
from kiln.config.decode import decode
from kiln.errors import AggregateError
from kiln.interpolate import InterpolationContext

pytestmark = pytest.mark.contract

_names = st.from_regex(r"[a-z][a-z0-9-]{2,20}", fullmatch=True)
_words = st.from_regex(r"[A-Za-z0-9_.-]{1,12}", fullmatch=True)
_tags = st.dictionaries(_words, st.text(max_size=20), max_size=4)
_device_names = st.sampled_from(["/dev/sda1", "/dev/sdb", "/dev/sdc", "/dev/xvdf"])


def _ebs_fragment(name: str, instance_type: str) -> dict:
    return {
        "build_name": name,
        "region": "us-east-1",
        "ami_name": f"{name}-{{{{ timestamp }}}}",
        "source_ami": "ami-0123456789",
        "instance_type": instance_type,
        "ssh_username": "ubuntu",
    }


_block_devices = st.builds(
    BlockDevice,
    device_name=_device_names,
    delete_on_termination=st.booleans(),
    no_device=st.booleans(),
    virtual_name=st.sampled_from(["", "ephemeral0", "ephemeral1"]),
    volume_type=st.sampled_from(["", "gp2", "gp3", "io1", "standard"]),
    volume_size=st.integers(min_value=0, max_value=2048),
    iops=st.integers(min_value=0, max_value=64000),
    encrypted=st.sampled_from([None, True, False]),
)


@given(
    name=_names,
    instance_type=st.sampled_from(["t2.micro", "m5.large", "c6g.xlarge"]),
    hours=st.integers(min_value=0, max_value=6),
    tags=_tags,
    run_tags=_tags,
    devices=st.lists(_block_devices, max_size=3),
)
@settings(max_examples=40, deadline=None, derandomize=True)
def test_resolution_is_idempotent(name, instance_type, hours, tags, run_tags, devices):
    """Invariant: resolve(resolve(x).to_fragment()) == resolve(x)."""
    fragment = {
        **_ebs_fragment(name, instance_type),
        "block_duration_minutes": hours * 60,
        "tags": tags,
        "run_tags": run_tags,
        "launch_block_device_mappings": [d.model_dump() for d in devices],
    }

    first = resolve("amazon-ebs", [fragment])
    second = resolve("amazon-ebs", [first.to_fragment()])

    assert second.to_fragment() == first.to_fragment()


@given(value=st.text(max_size=30))
@settings(max_examples=60, deadline=None, derandomize=True)
def test_rendered_template_text_survives_re_resolution(value):
    """Invariant: values that render to template text resolve back unchanged."""
    fragment = {
        **_ebs_fragment("web", "t2.micro"),
        "user_variables": {"v": value},
        "iam_instance_profile": "{{ user('v') }}",
        "tags": {"Source": "{{ user('v') }}"},
    }

    first = resolve("amazon-ebs", [fragment])
    second = resolve("amazon-ebs", [first.to_fragment()])

    assert second.run.iam_instance_profile == first.run.iam_instance_profile == value
    assert second.to_fragment() == first.to_fragment()


@given(values=st.lists(_words, min_size=1, max_size=5))
@settings(max_examples=30, deadline=None, derandomize=True)
def test_later_fragment_wins(values):
    """Invariant: for replace-strategy keys the last fragment's value is kept."""
    decoded = decode(
        AmazonEBSConfig,
        [{"instance_type": v} for v in values],
        context=InterpolationContext(),
    )

    assert decoded.config.run.instance_type == values[-1]
    assert decoded.sources["instance_type"].index == len(values) - 1


@given(first=_tags, second=_tags)
@settings(max_examples=30, deadline=None, derandomize=True)
def test_tags_accumulate(first, second):
    """Invariant: accumulating fields keep earlier keys and let later values win."""
    decoded = decode(
        AmazonEBSConfig,
        [{"tags": first}, {"tags": second}],
        context=InterpolationContext(),
    )

    assert decoded.config.ami.tags == {**first, **second}


@given(devices=st.lists(_block_devices, max_size=6))
@settings(max_examples=60, deadline=None, derandomize=True)
def test_each_device_maps_to_exactly_one_kind(devices):
    """Invariant: suppressed devices carry nothing; only persistent ones carry EBS."""
    mappings = build_block_devices(devices)

    assert len(mappings) == len(devices)
    for device, mapping in zip(devices, mappings, strict=True):
        assert mapping.device_name == device.device_name
        request = mapping.to_request()
        if device.no_device:
            assert mapping.kind is DeviceKind.SUPPRESSED
            assert set(request) == {"DeviceName", "NoDevice"}
        elif mapping.kind is DeviceKind.EPHEMERAL:
            assert mapping.ebs is None
            assert set(request) == {"DeviceName", "VirtualName"}
        else:
            assert mapping.kind is DeviceKind.PERSISTENT
            assert mapping.ebs is not None
            assert set(request) == {"DeviceName", "Ebs"}
            if device.volume_type != "io1":
                assert "Iops" not in request["Ebs"]
            if device.volume_size == 0:
                assert "VolumeSize" not in request["Ebs"]


@given(device=_device_names, key=_words)
@settings(max_examples=20, deadline=None, derandomize=True)
def test_kms_key_without_encryption_always_fails(device, key):
    """Invariant: a kms_key_id on a device explicitly not encrypted is rejected."""
    errors = BlockDevice(device_name=device, kms_key_id=key, encrypted=False).validation_errors()

    assert any(e.field == "kms_key_id" for e in errors)


@given(minutes=st.integers(min_value=1, max_value=600).filter(lambda m: m % 60))
@settings(max_examples=20, deadline=None, derandomize=True)
def test_failure_reports_are_deterministic(minutes):
    """Invariant: the same invalid input yields the same ordered report."""

    def report():
        with pytest.raises(AggregateError) as exc:
            resolve(
                "amazon-ebs",
                [{"block_duration_minutes": minutes, "spot_price": "auto"}],
            )
        return exc.value.messages

    first = report()

    assert first == report()
    assert first.count("run: block_duration_minutes must be multiple of 60") == 1
