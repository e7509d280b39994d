import pytest

from ndmtools.select import (
    BLOCK_DEVICE_TAG_LABEL,
    BLOCK_DEVICE_UNCLAIMED,
    FILTER_ACTIVE,
    FILTER_UNCLAIMED,
    KUBERNETES_HOST_NAME_LABEL,
    VOLUME_MODE_BLOCK,
    VOLUME_MODE_FILE_SYSTEM,
    BlockDevice,
    DeviceClaimSpec,
    LabelSelector,
    SelectConfig,
    SelectionError,
    SelectorRequirement,
    filter_active,
    filter_block_device_name,
    filter_block_device_tag,
    filter_device_type,
    filter_node_name,
    filter_out_sparse_block_devices,
    filter_resource_storage,
    filter_unclaimed,
    filter_volume_mode,
    is_tag_selector_required,
)

TEST_NO_OF_BDS = 6


def _labels(tags):
    result = []
    for index, tag in enumerate(tags, start=1):
        label = {KUBERNETES_HOST_NAME_LABEL: f"host{index}"}
        if tag:
            label[BLOCK_DEVICE_TAG_LABEL] = tag
        result.append(label)
    return result


LABELS_NO_TAG = _labels([None] * 6)
LABELS_SAME_TAG = _labels(["X"] * 6)
LABELS_MIXED = _labels([None, None, "X", "X", "Y", "Y"])


def _fake_devices(label_list, count):
    return [BlockDevice(name=f"bd{i}", labels=label_list[i]) for i in range(count)]


def _device(name, **kwargs):
    defaults = dict(state="Active", claim_state=BLOCK_DEVICE_UNCLAIMED, capacity=1024)
    defaults.update(kwargs)
    return BlockDevice(name=name, **defaults)


@pytest.mark.parametrize(
    "label_list, spec, wanted",
    [
        (LABELS_NO_TAG, DeviceClaimSpec(), 6),
        (LABELS_SAME_TAG, DeviceClaimSpec(), 0),
        (
            LABELS_SAME_TAG,
            DeviceClaimSpec(selector=LabelSelector(match_labels={BLOCK_DEVICE_TAG_LABEL: "X"})),
            6,
        ),
        (
            LABELS_SAME_TAG,
            DeviceClaimSpec(selector=LabelSelector(match_labels={"ndm.io/test": "test"})),
            0,
        ),
        (LABELS_MIXED, DeviceClaimSpec(selector=LabelSelector()), 2),
    ],
)
def test_filter_block_device_tag(label_list, spec, wanted):
    devices = _fake_devices(label_list, TEST_NO_OF_BDS)
    assert len(filter_block_device_tag(devices, spec)) == wanted


def test_filter_block_device_tag_keeps_untagged_names():
    devices = _fake_devices(LABELS_MIXED, TEST_NO_OF_BDS)
    result = filter_block_device_tag(devices, DeviceClaimSpec())
    assert [d.name for d in result] == ["bd0", "bd1"]


def test_tag_selector_not_required_for_expression():
    selector = LabelSelector(
        match_expressions=[SelectorRequirement(BLOCK_DEVICE_TAG_LABEL, "In", ["X"])]
    )
    assert is_tag_selector_required(selector) is False


def test_tag_selector_required_cases():
    assert is_tag_selector_required(None) is True
    assert is_tag_selector_required(LabelSelector(match_labels={"a": "b"})) is True


def test_filter_active_and_unclaimed():
    devices = [
        _device("a"),
        _device("b", state="Inactive"),
        _device("c", claim_state="Claimed"),
    ]
    assert [d.name for d in filter_active(devices, DeviceClaimSpec())] == ["a", "c"]
    assert [d.name for d in filter_unclaimed(devices, DeviceClaimSpec())] == ["a", "b"]


def test_filter_device_type():
    devices = [_device("a", device_type="disk"), _device("b", device_type="sparse")]
    assert len(filter_device_type(devices, DeviceClaimSpec())) == 2
    result = filter_device_type(devices, DeviceClaimSpec(device_type="sparse"))
    assert [d.name for d in result] == ["b"]


def test_filter_out_sparse():
    devices = [_device("a", device_type="disk"), _device("b", device_type="sparse")]
    assert [d.name for d in filter_out_sparse_block_devices(devices, DeviceClaimSpec())] == ["a"]


def test_filter_volume_mode():
    devices = [
        _device("raw"),
        _device("ext4", fs_type="ext4", mount_point="/mnt/a"),
        _device("xfs", fs_type="xfs", mount_point="/mnt/b"),
        _device("nomount", fs_type="ext4"),
    ]
    assert len(filter_volume_mode(devices, DeviceClaimSpec())) == 4
    block = filter_volume_mode(devices, DeviceClaimSpec(block_volume_mode=VOLUME_MODE_BLOCK))
    assert [d.name for d in block] == ["raw"]
    fs = filter_volume_mode(devices, DeviceClaimSpec(block_volume_mode=VOLUME_MODE_FILE_SYSTEM))
    assert [d.name for d in fs] == ["ext4", "xfs"]
    fs_xfs = filter_volume_mode(
        devices,
        DeviceClaimSpec(block_volume_mode=VOLUME_MODE_FILE_SYSTEM, device_format="xfs"),
    )
    assert [d.name for d in fs_xfs] == ["xfs"]


def test_filter_block_device_name():
    devices = [_device("a"), _device("b"), _device("b")]
    assert len(filter_block_device_name(devices, DeviceClaimSpec(block_device_name="b"))) == 1
    assert filter_block_device_name(devices, DeviceClaimSpec(block_device_name="z")) == []


def test_filter_resource_storage_picks_first_large_enough():
    devices = [_device("small", capacity=100), _device("big1", capacity=5000),
               _device("big2", capacity=9000)]
    result = filter_resource_storage(devices, DeviceClaimSpec(requests={"storage": "1k"}))
    assert [d.name for d in result] == ["big1"]


def test_filter_resource_storage_invalid_request_matches_first():
    devices = [_device("small", capacity=0), _device("big", capacity=5000)]
    result = filter_resource_storage(devices, DeviceClaimSpec())
    assert [d.name for d in result] == ["small"]


def test_filter_node_name():
    devices = [_device("a", node_name="n1"), _device("b", node_name="n2")]
    assert len(filter_node_name(devices, DeviceClaimSpec())) == 2
    assert [d.name for d in filter_node_name(devices, DeviceClaimSpec(node_name="n2"))] == ["b"]


def test_manual_selection_flag():
    assert SelectConfig(DeviceClaimSpec(block_device_name="a")).manual_selection is True
    assert SelectConfig(DeviceClaimSpec()).manual_selection is False


def test_apply_filters_chains():
    config = SelectConfig(DeviceClaimSpec())
    devices = [_device("a"), _device("b", state="Inactive"), _device("c", claim_state="Claimed")]
    result = config.apply_filters(devices, FILTER_ACTIVE, FILTER_UNCLAIMED)
    assert [d.name for d in result] == ["a"]


def test_apply_filters_unknown_key():
    with pytest.raises(KeyError):
        SelectConfig(DeviceClaimSpec()).apply_filters([_device("a")], "nope")


def test_filter_empty_list():
    with pytest.raises(SelectionError, match="no blockdevices found"):
        SelectConfig(DeviceClaimSpec()).filter([])


def test_filter_manual_selection_allows_sparse():
    devices = [_device("a"), _device("sparse-1", device_type="sparse")]
    config = SelectConfig(DeviceClaimSpec(block_device_name="sparse-1"))
    assert config.filter(devices).name == "sparse-1"


def test_filter_auto_excludes_sparse_and_tagged():
    devices = [
        _device("sparse", device_type="sparse", capacity=10**6),
        _device("tagged", labels={BLOCK_DEVICE_TAG_LABEL: "X"}, capacity=10**6),
        _device("plain", capacity=10**6),
    ]
    config = SelectConfig(DeviceClaimSpec(requests={"storage": "1Ki"}))
    assert config.filter(devices).name == "plain"


def test_filter_no_candidates():
    devices = [_device("a", state="Inactive")]
    with pytest.raises(SelectionError, match="no devices found matching the criteria"):
        SelectConfig(DeviceClaimSpec()).filter(devices)


def test_filter_no_device_large_enough():
    devices = [_device("a", capacity=10)]
    config = SelectConfig(DeviceClaimSpec(requests={"storage": "1Gi"}))
    with pytest.raises(SelectionError, match="matching resource requirements"):
        config.filter(devices)


def test_filter_manual_name_missing():
    devices = [_device("a")]
    with pytest.raises(SelectionError):
        SelectConfig(DeviceClaimSpec(block_device_name="b")).filter(devices)