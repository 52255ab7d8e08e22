from amd_tune.lib.sysfs import (
    UNAVAILABLE,
    current_of,
    khz_to_mhz,
    millidegrees_to_celsius,
    parse_dpm_table,
    parse_power_profiles,
    read_attr,
    read_int,
)

from conftest import PROFILES, PROFILES_SMU13, SCLK


def test_read_attr_strips_and_falls_back(tmp_path):
    f = tmp_path / "scaling_governor"
    f.write_text("performance\n")
    assert read_attr(f) == "performance"
    assert read_attr(tmp_path / "missing") == UNAVAILABLE
    assert read_attr(tmp_path / "missing", default="") == ""


def test_read_int(tmp_path):
    f = tmp_path / "temp1_input"
    f.write_text("45000\n")
    assert read_int(f) == 45000
    (tmp_path / "junk").write_text("n/a\n")
    assert read_int(tmp_path / "junk") is None
    assert read_int(tmp_path / "missing", default=-1) == -1


def test_temperature_conversion():
    assert millidegrees_to_celsius(45000) == 45
    assert millidegrees_to_celsius(0) == 0
    assert millidegrees_to_celsius(45999) == 45


def test_khz_to_mhz():
    assert khz_to_mhz(3400000) == 3400


def test_parse_dpm_table_marks_current():
    rows = parse_dpm_table(SCLK)
    assert [r.index for r in rows] == ["0", "1", "2"]
    assert [r.value for r in rows] == ["500Mhz", "1200Mhz", "2100Mhz"]
    assert [r.current for r in rows] == [False, True, False]
    assert current_of(rows).value == "1200Mhz"
    assert rows[1].describe() == "1: 1200Mhz  (current)"
    assert rows[0].describe() == "0: 500Mhz"


def test_parse_dpm_table_pcie_and_sleep_state():
    rows = parse_dpm_table("S: 19Mhz *\n0: 2.5GT/s, x8 \n\nbogus line\n")
    assert rows[0].index == "S" and rows[0].current
    assert rows[1].value == "2.5GT/s, x8"
    assert len(rows) == 2


def test_parse_dpm_table_without_current():
    rows = parse_dpm_table("0: 500Mhz\n1: 800Mhz\n")
    assert current_of(rows) is None


def test_parse_power_profiles():
    entries = parse_power_profiles(PROFILES)
    assert [e.index for e in entries] == [0, 1, 2, 3, 4, 5, 6]
    assert entries[2].name == "POWER_SAVING"
    assert current_of(entries).name == "3D_FULL_SCREEN"


def test_parse_power_profiles_legacy_layout():
    text = (
        "NUM        MODE_NAME     SCLK_UP_HYST   SCLK_DOWN_HYST\n"
        "  0   BOOTUP_DEFAULT:        -             -\n"
        "  5          COMPUTE *:        0             5\n"
    )
    entries = parse_power_profiles(text)
    assert [(e.index, e.name, e.current) for e in entries] == [
        (0, "BOOTUP_DEFAULT", False),
        (5, "COMPUTE", True),
    ]


def test_parse_power_profiles_header_row_layout():
    entries = parse_power_profiles(PROFILES_SMU13)
    assert [(e.index, e.name) for e in entries] == [
        (0, "BOOTUP_DEFAULT"),
        (1, "3D_FULL_SCREEN"),
        (2, "POWER_SAVING"),
        (3, "VIDEO"),
        (4, "VR"),
        (5, "COMPUTE"),
        (6, "CUSTOM"),
    ]
    assert current_of(entries).index == 1


def test_parse_power_profiles_header_row_detached_marker():
    text = "      BOOTUP_DEFAULT  3D_FULL_SCREEN  POWER_SAVING    VIDEO         * VR\n"
    entries = parse_power_profiles(text)
    assert current_of(entries).name == "VIDEO"
    assert [e.current for e in entries].count(True) == 1


def test_parse_power_profiles_unrecognised_layout():
    assert parse_power_profiles("not a profile table\n") == []
