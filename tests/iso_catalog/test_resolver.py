"""Attribute derivation for the interactive ``add`` flow."""

from __future__ import annotations

import pytest

from Pim.IsoCatalog.errors import (
    ChecksumNotFoundError,
    InvalidChecksumFormatError,
    InvalidFilenameError,
    InvalidURLError,
)
from Pim.IsoCatalog.resolver import (
    catalog_key_for,
    derive_attributes,
    derive_display_name,
    detect_architecture,
    extract_filename,
)

DIGEST = "ab" * 32


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("ubuntu-22.04-x86_64.iso", "x86_64"),
        ("Fedora-Server-dvd-X86-64-40.iso", "x86_64"),
        ("debian-i386-netinst.iso", "i386"),
        ("debian-12.5.0-amd64-netinst.iso", "amd64"),
        ("alpine-standard-3.19-aarch64.iso", "aarch64"),
        ("ubuntu-24.04-live-server-arm64.iso", "arm64"),
        ("raspios-armhf.iso", "armhf"),
        ("freedos-x86.iso", "x86"),
        ("generic.iso", "unknown"),
    ],
)
def test_detect_architecture(filename, expected):
    assert detect_architecture(filename) == expected


def test_display_name_title_cases_words():
    assert derive_display_name("debian-12.5.0_amd64-netinst.iso") == "Debian 12.5.0 Amd64 Netinst"


def test_catalog_key_strips_extension():
    assert catalog_key_for("alpine-virt-3.19.iso") == "alpine-virt-3.19"


@pytest.mark.parametrize(
    "url",
    [
        "https://example.org/",
        "https://example.org",
        "https://example.org/images/disk.img",
        "https://example.org/images/",
    ],
)
def test_extract_filename_requires_iso_suffix(url):
    with pytest.raises(InvalidFilenameError):
        extract_filename(url)


def test_extract_filename_ignores_query():
    assert extract_filename("https://example.org/a/b/image.iso?mirror=1") == "image.iso"


def test_derive_attributes_with_inline_digest():
    entry = derive_attributes("https://example.org/isos/debian-12-amd64.iso", DIGEST.upper())

    assert entry.key == "debian-12-amd64"
    assert entry.name == "Debian 12 Amd64"
    assert entry.checksum == f"sha256:{DIGEST}"
    assert entry.checksum_url is None
    assert entry.filename == "debian-12-amd64.iso"
    assert entry.architecture == "amd64"
    assert "checksum_url" not in entry.to_mapping()


def test_derive_attributes_with_prefixed_digest():
    entry = derive_attributes("http://example.org/generic.iso", f"sha256:{DIGEST}")
    assert entry.checksum == f"sha256:{DIGEST}"
    assert entry.architecture == "unknown"


def test_derive_attributes_reads_manifest_through_fetcher():
    requested = []
    manifest = f"{'1' * 64}  other.iso\n{'2' * 64} *ubuntu-22.04-x86_64.iso\n"

    def fetch_text(url: str) -> str:
        requested.append(url)
        return manifest

    entry = derive_attributes(
        "https://releases.example.org/22.04/ubuntu-22.04-x86_64.iso",
        "https://releases.example.org/22.04/SHA256SUMS",
        fetch_text=fetch_text,
    )

    assert requested == ["https://releases.example.org/22.04/SHA256SUMS"]
    assert entry.checksum == f"sha256:{'2' * 64}"
    assert entry.checksum_url == "https://releases.example.org/22.04/SHA256SUMS"
    assert entry.architecture == "x86_64"


def test_manifest_without_entry_fails():
    with pytest.raises(ChecksumNotFoundError):
        derive_attributes(
            "https://example.org/missing.iso",
            "https://example.org/SHA256SUMS",
            fetch_text=lambda url: f"{'1' * 64}  other.iso\n",
        )


def test_unrecognised_checksum_token_fails():
    with pytest.raises(InvalidChecksumFormatError):
        derive_attributes("https://example.org/disk.iso", "not-a-digest")


def test_non_http_url_is_rejected():
    with pytest.raises(InvalidURLError):
        derive_attributes("ftp://example.org/disk.iso", DIGEST)
