"""Block device validation and the EC2 mappings derived from it."""

import pytest

from kiln import resolve
from kiln.builders.amazon import (
    BlockDevice,
    BlockDevices,
    DeviceKind,
    EbsBlockDevice,
    build_block_devices,
)
from kiln.errors import AggregateError, DerivationError

pytestmark = pytest.mark.unit


class TestDerivation:
    """Each device becomes exactly one kind of mapping."""

    def test_suppressed_takes_precedence(self):
        [mapping] = build_block_devices(
            [BlockDevice(device_name="/dev/sdb", no_device=True, virtual_name="ephemeral0", volume_size=10)]
        )

        assert mapping.kind is DeviceKind.SUPPRESSED
        assert mapping.ebs is None
        assert mapping.virtual_name is None
        assert mapping.to_request() == {"DeviceName": "/dev/sdb", "NoDevice": ""}

    def test_ephemeral(self):
        [mapping] = build_block_devices(
            [BlockDevice(device_name="/dev/sdc", virtual_name="ephemeral1")]
        )

        assert mapping.kind is DeviceKind.EPHEMERAL
        assert mapping.ebs is None
        assert mapping.to_request() == {"DeviceName": "/dev/sdc", "VirtualName": "ephemeral1"}

    def test_persistent_with_all_options(self):
        [mapping] = build_block_devices(
            [
                BlockDevice(
                    device_name="/dev/sda1",
                    delete_on_termination=True,
                    volume_type="io1",
                    volume_size=100,
                    iops=3000,
                    snapshot_id="snap-1",
                    encrypted=True,
                    kms_key_id="alias/ebs",
                )
            ]
        )

        assert mapping.kind is DeviceKind.PERSISTENT
        assert mapping.to_request() == {
            "DeviceName": "/dev/sda1",
            "Ebs": {
                "DeleteOnTermination": True,
                "VolumeType": "io1",
                "VolumeSize": 100,
                "Iops": 3000,
                "SnapshotId": "snap-1",
                "Encrypted": True,
                "KmsKeyId": "alias/ebs",
            },
        }

    def test_persistent_omits_unset_options(self):
        [mapping] = build_block_devices([BlockDevice(device_name="/dev/sda1")])

        assert mapping.ebs == EbsBlockDevice(delete_on_termination=False)
        assert mapping.to_request() == {
            "DeviceName": "/dev/sda1",
            "Ebs": {"DeleteOnTermination": False},
        }

    def test_iops_only_for_io1(self):
        [gp2, io1] = build_block_devices(
            [
                BlockDevice(device_name="/dev/sdf", volume_type="gp2", iops=500),
                BlockDevice(device_name="/dev/sdg", volume_type="io1", iops=500),
            ]
        )

        assert gp2.ebs is not None and gp2.ebs.iops is None
        assert io1.ebs is not None and io1.ebs.iops == 500

    def test_order_is_preserved(self):
        names = ["/dev/sdb", "/dev/sda", "/dev/sdc"]

        mappings = build_block_devices([BlockDevice(device_name=n) for n in names])

        assert [m.device_name for m in mappings] == names

    def test_unnamed_device_is_a_derivation_error(self):
        with pytest.raises(DerivationError, match="device_name"):
            build_block_devices([BlockDevice(volume_size=8)])


class TestValidation:
    """Device errors are prefixed with the list they came from."""

    def test_missing_device_name(self, context):
        section = BlockDevices.model_validate(
            {"ami_block_device_mappings": [{"volume_size": 8}]}
        )

        assert [str(e) for e in section.prepare(context)] == [
            "AMIMapping: The `device_name` must be specified for every device in the "
            "block device mapping."
        ]

    def test_kms_key_requires_encryption(self, context):
        section = BlockDevices.model_validate(
            {
                "launch_block_device_mappings": [
                    {"device_name": "/dev/sdb", "kms_key_id": "k", "encrypted": False}
                ]
            }
        )

        assert [str(e) for e in section.prepare(context)] == [
            "LaunchMapping: The device /dev/sdb, must also have `encrypted: true` "
            "when setting a kms_key_id."
        ]

    def test_kms_key_with_unset_encryption_is_accepted(self, context):
        section = BlockDevices.model_validate(
            {"launch_block_device_mappings": [{"device_name": "/dev/sdb", "kms_key_id": "k"}]}
        )

        assert section.prepare(context) == []

    def test_virtual_name_must_be_ephemeral(self, context):
        section = BlockDevices.model_validate(
            {"ami_block_device_mappings": [{"device_name": "/dev/sdb", "virtual_name": "swap"}]}
        )

        [err] = section.prepare(context)
        assert str(err).startswith("AMIMapping: The device /dev/sdb has virtual_name 'swap'")

    def test_launch_omissions(self):
        section = BlockDevices.model_validate(
            {
                "launch_block_device_mappings": [
                    {"device_name": "/dev/sdb", "omit_from_artifact": True},
                    {"device_name": "/dev/sdc"},
                ]
            }
        )

        assert section.launch_omissions() == {"/dev/sdb": True, "/dev/sdc": False}


def test_resolved_builder_derives_both_lists(ebs_fragment):
    cfg = resolve(
        "amazon-ebs",
        [
            {
                **ebs_fragment,
                "ami_block_device_mappings": [{"device_name": "/dev/sdb", "no_device": True}],
                "launch_block_device_mappings": [
                    {"device_name": "/dev/sda1", "volume_size": 40, "volume_type": "gp3"}
                ],
            }
        ],
    )

    assert [m.kind for m in cfg.block_devices.build_ami_devices()] == [DeviceKind.SUPPRESSED]
    [launch] = cfg.block_devices.build_launch_devices()
    assert launch.to_request()["Ebs"] == {
        "DeleteOnTermination": False,
        "VolumeType": "gp3",
        "VolumeSize": 40,
    }


def test_unknown_device_field_is_a_decode_error(ebs_fragment):
    with pytest.raises(AggregateError) as exc:
        resolve(
            "amazon-ebs",
            [{**ebs_fragment, "ami_block_device_mappings": [{"device_name": "/dev/sdb", "size": 8}]}],
        )

    [entry] = exc.value.entries
    assert entry.component == "block_devices"
    assert entry.error.field == "ami_block_device_mappings"
