from sfp_prereqs.semver import extract_version, major_version, parse_semver


def test_parse_semver_accepts_v_prefix() -> None:
    assert parse_semver("v20.11.0") == (20, 11, 0)
    assert parse_semver("1.2") is None


def test_extract_version_from_tool_output() -> None:
    assert extract_version("Docker version 24.0.7, build afdd53b") == "24.0.7"
    assert extract_version("@flxbl-io/sfp/49.2.0 linux-x64 node-v20.11.0") == "49.2.0"
    assert extract_version("no version here") is None
    assert extract_version(None) is None


def test_major_version() -> None:
    assert major_version("v18.19.1") == 18
    assert major_version("") is None
