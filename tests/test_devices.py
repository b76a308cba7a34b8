import pytest

from usb_tui import devices as devices_module
from usb_tui.devices import (
    DeviceKind,
    DeviceRecord,
    UNKNOWN_FIELD,
    UNKNOWN_ID,
    classify_device,
    count_firmware,
    fetch_devices,
    filter_devices,
    parse_device_line,
    parse_device_listing,
)
from usb_tui.osutils import EnumerationError


SAMPLE = """Bus 002 Device 001: ID 1d6b:0003 Linux Foundation 3.0 root hub
Bus 001 Device 004: ID 0483:DF11 STMicroelectronics STM Device in DFU Mode

Bus 001 Device 003: ID 046d:c52b Logitech, Inc. Unifying Receiver

Bus 001 Device 001: ID 1d6b:0002 Linux Foundation 2.0 root hub
"""


def test_parse_listing_yields_one_record_per_non_blank_line():
    records = parse_device_listing(SAMPLE)
    assert len(records) == 4
    assert [record.device for record in records] == ["001", "004", "003", "001"]
    assert [record.bus for record in records] == ["002", "001", "001", "001"]


def test_parse_listing_of_blank_text_is_empty():
    assert parse_device_listing("") == []
    assert parse_device_listing("\n   \n\t\n") == []


def test_parse_line_dfu_device():
    record = parse_device_line("Bus 001 Device 002: ID 0483:df11 STM Device in DFU Mode")
    assert record.bus == "001"
    assert record.device == "002"
    assert record.vendor_product_id == "0483:df11"
    assert record.vendor_id == "0483"
    assert record.product_id == "df11"
    assert record.description == "STM Device in DFU Mode"
    assert record.kind is DeviceKind.FIRMWARE
    assert record.is_firmware_mode


def test_parse_line_lowercases_id_and_keeps_description_case():
    record = parse_device_line("bus 003 DEVICE 007: id 046D:C52B Logitech USB Receiver")
    assert record.vendor_product_id == "046d:c52b"
    assert record.description == "Logitech USB Receiver"
    assert record.kind is DeviceKind.NORMAL


def test_parse_line_without_description_defaults_to_unknown():
    assert parse_device_line("Bus 001 Device 005: ID 1234:abcd").description == "Unknown"
    assert parse_device_line("Bus 001 Device 005: ID 1234:abcd    ").description == "Unknown"


def test_parse_line_tolerates_non_numeric_bus():
    record = parse_device_line("Bus usb3 Device 0x1f: ID 1234:5678 Widget")
    assert record.bus == "usb3"
    assert record.device == "0x1f"
    assert record.description == "Widget"


def test_parse_line_with_malformed_id_uses_sentinel():
    record = parse_device_line("Bus 001 Device 002: ID zzzz-1234 Odd Device")
    assert record.bus == "001"
    assert record.vendor_product_id == UNKNOWN_ID
    assert record.description == "Odd Device"


def test_parse_line_fallback_keeps_raw_text():
    line = "garbage text with no structure"
    record = parse_device_line(line)
    assert record.description == line
    assert record.bus == UNKNOWN_FIELD
    assert record.device == UNKNOWN_FIELD
    assert record.vendor_product_id == UNKNOWN_ID


def test_parse_listing_keeps_fallback_lines_in_order():
    text = "Bus 001 Device 002: ID 0483:df11 DFU\n  odd line  \nBus 001 Device 003: ID 1111:2222 Mouse\n"
    records = parse_device_listing(text)
    assert [record.description for record in records] == ["DFU", "  odd line  ", "Mouse"]


@pytest.mark.parametrize("text", ["DFU", "dfu", "Dfu", "Download Gadget", "Bootloader", "RP2 BOOT"])
def test_classify_device_firmware_indicators(text):
    assert classify_device(text) is DeviceKind.FIRMWARE


@pytest.mark.parametrize("text", ["", "Logitech Mouse", "Linux Foundation 2.0 root hub"])
def test_classify_device_normal(text):
    assert classify_device(text) is DeviceKind.NORMAL


def test_filter_devices_without_filter_is_identity():
    records = parse_device_listing(SAMPLE)
    filtered = filter_devices(records, firmware_only=False)
    assert filtered == records
    assert filtered is not records


def test_filter_devices_keeps_only_firmware_in_order():
    records = [
        DeviceRecord("001", "001", "aaaa:0001", "Boot A", DeviceKind.FIRMWARE),
        DeviceRecord("001", "002", "aaaa:0002", "Mouse", DeviceKind.NORMAL),
        DeviceRecord("001", "003", "aaaa:0003", "DFU B", DeviceKind.FIRMWARE),
    ]
    filtered = filter_devices(records, firmware_only=True)
    assert [record.device for record in filtered] == ["001", "003"]
    assert len(records) == 3


def test_dfu_filter_scenario():
    text = (
        "Bus 001 Device 002: ID 0483:df11 STM Device in DFU Mode\n"
        "Bus 001 Device 003: ID 046d:c52b Logitech Receiver\n"
    )
    records = parse_device_listing(text)
    assert filter_devices(records, firmware_only=False) == records
    filtered = filter_devices(records, firmware_only=True)
    assert len(filtered) == 1
    assert filtered[0].vendor_product_id == "0483:df11"
    assert count_firmware(records) == 1


def test_fetch_devices_parses_command_output(monkeypatch):
    monkeypatch.setattr(
        devices_module,
        "read_device_listing",
        lambda command, timeout: "Bus 001 Device 002: ID 0483:df11 DFU\n",
    )
    records = fetch_devices(["lsusb"], timeout=1.0)
    assert len(records) == 1
    assert records[0].is_firmware_mode


def test_fetch_devices_returns_empty_list_on_enumeration_failure(monkeypatch):
    def failing(command, timeout):
        raise EnumerationError("lsusb missing")

    monkeypatch.setattr(devices_module, "read_device_listing", failing)
    assert fetch_devices(["lsusb"], timeout=1.0) == []


def test_record_key_and_device_path():
    record = parse_device_line("Bus 001 Device 004: ID 0483:df11 STM Device in DFU Mode")
    assert record.key == "001:004"
    assert record.dev_path == "/dev/bus/usb/001/004"


def test_fallback_record_has_no_device_path():
    record = parse_device_line("not a device line")
    assert record.key == f"{UNKNOWN_FIELD}:{UNKNOWN_FIELD}"
    assert record.dev_path is None
