"""End-to-end behaviour of :class:`CatalogEngine` over a mocked transport."""

from __future__ import annotations

import hashlib

import httpx
import yaml

from Pim.IsoCatalog.engine import VerifySummary

ALPINE = b"alpine image bytes"
DEBIAN = b"debian image bytes, slightly longer"


def _serve(mapping):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = mapping.get(request.url.path)
        if payload is None:
            return httpx.Response(404, request=request)
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(200, content=payload, request=request)

    return handler


def test_config_prints_iso_dir(make_engine, read_output, iso_dir):
    engine = make_engine({})
    assert engine.show_config() == iso_dir
    assert read_output().strip() == f"iso_dir: {iso_dir}"
    assert iso_dir.is_dir()


def test_list_empty_catalog_prints_hint(make_engine, read_output):
    listing = make_engine({}).list_entries()
    assert listing.rows == ()
    assert 'Use "pim-iso add"' in read_output()


def test_list_short_prints_sorted_keys(make_engine, entry_payload, read_output):
    engine = make_engine({"debian": entry_payload("debian", DEBIAN), "alpine": entry_payload("alpine", ALPINE)})

    listing = engine.list_entries()

    assert read_output().splitlines() == ["alpine", "debian"]
    assert [row.key for row in listing.rows] == ["alpine", "debian"]


def test_list_long_reports_status_and_total(make_engine, entry_payload, iso_dir, read_output):
    catalog = {
        "alpine": entry_payload("alpine", ALPINE),
        "debian": entry_payload("debian", DEBIAN),
        "fedora": entry_payload("fedora", b"fedora"),
    }
    engine = make_engine(catalog)
    (iso_dir / "alpine.iso").write_bytes(ALPINE)
    (iso_dir / "debian.iso").write_bytes(b"corrupted")

    listing = engine.list_entries(long=True)

    statuses = {row.key: row.status for row in listing.rows}
    assert statuses == {"alpine": "verified", "debian": "downloaded", "fedora": "missing"}
    assert listing.total_bytes == len(ALPINE) + len(b"corrupted")
    output = read_output()
    assert "verified" in output and "missing" in output
    assert "Total: 27.00 B" in output


def test_download_unknown_key(make_engine, read_output):
    assert make_engine({}).download("ghost") is False
    assert "Error: ISO 'ghost' not found in catalog" in read_output()


def test_download_declined_makes_no_request(make_engine, entry_payload, iso_dir):
    engine = make_engine({"alpine": entry_payload("alpine", ALPINE)}, answers=["n"])
    target = iso_dir / "alpine.iso"
    target.write_bytes(b"old")

    assert engine.download("alpine") is False
    assert target.read_bytes() == b"old"


def test_download_and_verify_success(make_engine, entry_payload, iso_dir, read_output):
    engine = make_engine(
        {"alpine": entry_payload("alpine", ALPINE)},
        _serve({"/alpine.iso": ALPINE}),
    )

    assert engine.download("alpine") is True
    assert (iso_dir / "alpine.iso").read_bytes() == ALPINE
    output = read_output()
    assert "Downloading alpine.iso..." in output
    assert "OK Checksum matches: sha256:" in output


def test_forced_download_replaces_without_prompt(make_engine, entry_payload, iso_dir):
    engine = make_engine({"alpine": entry_payload("alpine", ALPINE)}, _serve({"/alpine.iso": ALPINE}))
    (iso_dir / "alpine.iso").write_bytes(b"old")

    assert engine.download("alpine", force=True) is True
    assert (iso_dir / "alpine.iso").read_bytes() == ALPINE


def test_download_with_wrong_checksum_reports_mismatch(make_engine, entry_payload, iso_dir, read_output):
    engine = make_engine(
        {"alpine": entry_payload("alpine", ALPINE, checksum="sha256:" + "0" * 64)},
        _serve({"/alpine.iso": ALPINE}),
    )

    assert engine.download("alpine") is False
    assert (iso_dir / "alpine.iso").exists()
    output = read_output()
    assert "FAIL Checksum mismatch!" in output
    assert "Expected: sha256:0000000000000000..." in output
    assert f"Got:      sha256:{hashlib.sha256(ALPINE).hexdigest()[:16]}..." in output


def test_download_http_error_keeps_existing_file(make_engine, entry_payload, iso_dir, read_output):
    engine = make_engine({"alpine": entry_payload("alpine", ALPINE)}, _serve({}), answers=["y"])
    (iso_dir / "alpine.iso").write_bytes(b"old")

    assert engine.download("alpine") is False
    assert (iso_dir / "alpine.iso").read_bytes() == b"old"
    assert "Error: HTTP Error: 404" in read_output()


def test_download_all_continues_after_failure(make_engine, entry_payload, iso_dir, read_output):
    fedora = b"fedora bytes"
    catalog = {
        "alpine": entry_payload("alpine", ALPINE),
        "debian": entry_payload("debian", DEBIAN),
        "fedora": entry_payload("fedora", fedora),
    }
    engine = make_engine(
        catalog,
        _serve(
            {
                "/alpine.iso": ALPINE,
                "/debian.iso": httpx.ConnectError("connection refused"),
                "/fedora.iso": fedora,
            }
        ),
    )

    assert engine.download_all() == 2
    output = read_output()
    assert "[2/3] Downloading debian..." in output
    assert "FAIL Download failed:" in output
    assert "Summary: 2 ISOs downloaded successfully" in output
    assert not (iso_dir / "debian.iso").exists()


def test_download_all_skips_entry_with_malformed_url(make_engine, entry_payload, iso_dir, read_output):
    fedora = b"fedora bytes"
    broken = entry_payload("broken", b"")
    broken["url"] = "https://[::1/broken.iso"
    engine = make_engine(
        {
            "alpine": entry_payload("alpine", ALPINE),
            "broken": broken,
            "fedora": entry_payload("fedora", fedora),
        },
        _serve({"/alpine.iso": ALPINE, "/fedora.iso": fedora}),
    )

    assert engine.download_all() == 2
    assert "FAIL Download failed:" in read_output()
    assert (iso_dir / "fedora.iso").read_bytes() == fedora


def test_download_all_continues_after_checksum_failure(make_engine, entry_payload, iso_dir, read_output):
    fedora = b"fedora bytes"
    engine = make_engine(
        {
            "alpine": entry_payload("alpine", ALPINE, checksum="sha256:" + "0" * 64),
            "fedora": entry_payload("fedora", fedora),
        },
        _serve({"/alpine.iso": ALPINE, "/fedora.iso": fedora}),
    )

    assert engine.download_all() == 1
    output = read_output()
    assert "FAIL Checksum verification failed" in output
    assert "OK Downloaded and verified" in output
    assert (iso_dir / "alpine.iso").exists()
    assert "Summary: 1 ISOs downloaded successfully" in output


def test_download_all_with_everything_present(make_engine, entry_payload, iso_dir, read_output):
    engine = make_engine({"alpine": entry_payload("alpine", ALPINE)})
    (iso_dir / "alpine.iso").write_bytes(ALPINE)

    assert engine.download_all() == 0
    assert "All ISOs are already downloaded." in read_output()


def test_verify_entry_without_checksum(make_engine, iso_dir, read_output):
    engine = make_engine({"bare": {"url": "https://x/bare.iso"}})
    (iso_dir / "bare.iso").write_bytes(b"bytes")

    assert engine.verify("bare") is False
    assert "has no checksum in catalog" in read_output()


def test_verify_missing_file(make_engine, entry_payload, read_output):
    engine = make_engine({"alpine": entry_payload("alpine", ALPINE)})
    assert engine.verify("alpine") is False
    assert "Error: File 'alpine.iso' not found" in read_output()


def test_silent_verify_prints_nothing(make_engine, entry_payload, iso_dir, read_output):
    engine = make_engine({"alpine": entry_payload("alpine", ALPINE)})
    (iso_dir / "alpine.iso").write_bytes(ALPINE)

    assert engine.verify("alpine", silent=True) is True
    assert read_output() == ""


def test_verify_all_counts_only_present_files(make_engine, entry_payload, iso_dir, read_output):
    catalog = {
        "alpine": entry_payload("alpine", ALPINE),
        "debian": entry_payload("debian", DEBIAN),
        "fedora": entry_payload("fedora", b"fedora"),
    }
    engine = make_engine(catalog)
    (iso_dir / "alpine.iso").write_bytes(ALPINE)
    (iso_dir / "debian.iso").write_bytes(b"tampered")

    assert engine.verify_all() == VerifySummary(passed=1, failed=1)
    output = read_output()
    assert "fedora" not in output
    assert "Summary: 1 passed, 1 failed" in output


def test_verify_all_with_nothing_downloaded(make_engine, entry_payload, read_output):
    assert make_engine({"alpine": entry_payload("alpine", ALPINE)}).verify_all() == VerifySummary()
    assert "No downloaded ISOs to verify." in read_output()


def test_add_with_manifest_writes_fragment(make_engine, paths, read_output):
    digest = hashlib.sha256(b"alpine").hexdigest().upper()
    manifest = f"{digest} *alpine-virt-3.19.1-x86_64.iso\n{'1' * 64}  other.iso\n"
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, text=manifest, request=request)

    engine = make_engine(
        {},
        handler,
        answers=[
            "https://dl.example.org/alpine-virt-3.19.1-x86_64.iso",
            "https://dl.example.org/SHA256SUMS",
        ],
    )

    assert engine.add() is True
    assert seen == ["https://dl.example.org/SHA256SUMS"]
    fragment = paths.catalog_fragments_dir / "alpine-virt-3.19.1-x86_64.yml"
    document = yaml.safe_load(fragment.read_text(encoding="utf-8"))
    entry = document["alpine-virt-3.19.1-x86_64"]
    assert entry["checksum"] == f"sha256:{digest.lower()}"
    assert entry["checksum_url"] == "https://dl.example.org/SHA256SUMS"
    assert entry["architecture"] == "x86_64"
    assert list(entry) == ["name", "url", "checksum", "checksum_url", "filename", "architecture"]
    assert entry["name"] == "Alpine Virt 3.19.1 X86 64"
    assert "OK Added to catalog" in read_output()
    output = read_output()
    assert output.index("name: Alpine Virt") < output.index("url: https://dl.example.org")


def test_add_with_literal_hash(make_engine, paths):
    digest = "ab" * 32
    engine = make_engine({}, answers=["https://x/debian-12-arm64.iso", digest])

    assert engine.add() is True
    document = yaml.safe_load((paths.catalog_fragments_dir / "debian-12-arm64.yml").read_text(encoding="utf-8"))
    assert document["debian-12-arm64"]["checksum"] == f"sha256:{digest}"
    assert "checksum_url" not in document["debian-12-arm64"]


def test_add_rejects_non_http_url(make_engine, paths, read_output):
    engine = make_engine({}, answers=["ftp://x/debian.iso"])

    assert engine.add() is False
    assert "URL must start with http:// or https://" in read_output()
    assert not paths.catalog_fragments_dir.exists()


def test_add_aborts_when_manifest_lacks_file(make_engine, paths, read_output):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=f"{'1' * 64}  other.iso\n", request=request)

    engine = make_engine({}, handler, answers=["https://x/debian.iso", "https://x/SHA256SUMS"])

    assert engine.add() is False
    assert "Could not find checksum for debian.iso" in read_output()
    assert not paths.catalog_fragments_dir.exists()
