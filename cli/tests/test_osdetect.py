from sfp_prereqs.osdetect import (
    OsFamily,
    detect_os_family,
    is_amazon_linux,
    is_amazon_linux_2,
    machine_arch,
    read_os_release,
)


def _touch(root, rel: str, content: str = "") -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_detects_fedora_from_redhat_release(tmp_path) -> None:
    _touch(tmp_path, "etc/redhat-release", "Fedora release 40\n")
    assert detect_os_family(tmp_path) is OsFamily.FEDORA


def test_detects_fedora_from_system_release(tmp_path) -> None:
    _touch(tmp_path, "etc/system-release", "Amazon Linux release 2 (Karoo)\n")
    assert detect_os_family(tmp_path) is OsFamily.FEDORA


def test_detects_debian(tmp_path) -> None:
    _touch(tmp_path, "etc/debian_version", "12.5\n")
    assert detect_os_family(tmp_path) is OsFamily.DEBIAN


def test_redhat_marker_wins_over_debian(tmp_path) -> None:
    _touch(tmp_path, "etc/debian_version", "12.5\n")
    _touch(tmp_path, "etc/redhat-release", "Rocky Linux\n")
    assert detect_os_family(tmp_path) is OsFamily.FEDORA


def test_unknown_without_markers(tmp_path) -> None:
    (tmp_path / "etc").mkdir()
    assert detect_os_family(tmp_path) is OsFamily.UNKNOWN
    assert detect_os_family(tmp_path / "missing") is OsFamily.UNKNOWN


def test_read_os_release_strips_quotes(tmp_path) -> None:
    _touch(
        tmp_path,
        "etc/os-release",
        '# comment\nID=ubuntu\nVERSION_CODENAME="jammy"\nPRETTY_NAME=\'Ubuntu 22.04\'\n\n',
    )
    data = read_os_release(tmp_path)
    assert data == {"ID": "ubuntu", "VERSION_CODENAME": "jammy", "PRETTY_NAME": "Ubuntu 22.04"}


def test_read_os_release_missing_file(tmp_path) -> None:
    assert read_os_release(tmp_path) == {}


def test_amazon_linux_detection(tmp_path) -> None:
    assert not is_amazon_linux(tmp_path)
    _touch(tmp_path, "etc/system-release", "Amazon Linux release 2 (Karoo)\n")
    assert is_amazon_linux(tmp_path)
    assert is_amazon_linux_2({"ID": "amzn", "VERSION_ID": "2"})
    assert not is_amazon_linux_2({"ID": "amzn", "VERSION_ID": "2023"})


def test_machine_arch_normalizes() -> None:
    assert machine_arch("x86_64") == "amd64"
    assert machine_arch("aarch64") == "arm64"
    assert machine_arch("ARM64") == "arm64"
    assert machine_arch("riscv64") == "riscv64"
