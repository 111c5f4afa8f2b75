import hashlib
import io
import re
import struct

import pytest

from gitbuilder.sshd import (
    MULTIPLE_PUSH,
    RepoNameError,
    clean_exec,
    clean_repo_name,
    fingerprint,
    git_pkt_line,
    parse_ssh_string,
    ssh_connection,
)


def ssh_string(text):
    data = text.encode()
    return struct.pack(">I", len(data)) + data


def test_fingerprint_format():
    blob = b"ssh-rsa made-up-key-material"
    fp = fingerprint(blob)
    assert re.fullmatch(r"[0-9a-f]{2}(:[0-9a-f]{2}){15}", fp)
    assert fp.replace(":", "") == hashlib.md5(blob).hexdigest()


def test_fingerprint_of_empty_blob():
    assert fingerprint(b"") == "d4:1d:8c:d9:8f:00:b2:04:e9:80:09:98:ec:f8:42:7e"


def test_fingerprint_differs_per_key():
    assert fingerprint(b"one") != fingerprint(b"two")
    assert fingerprint(b"one") == fingerprint(b"one")


def test_parse_ssh_string_round_trip():
    assert parse_ssh_string(ssh_string("git-receive-pack 'app'")) == "git-receive-pack 'app'"


def test_parse_ssh_string_ignores_trailing_bytes():
    assert parse_ssh_string(ssh_string("ping") + b"extra") == "ping"


@pytest.mark.parametrize("payload", [b"", b"\x00\x00", b"\x00\x00\x00\x09abc"])
def test_parse_ssh_string_short(payload):
    with pytest.raises(ValueError):
        parse_ssh_string(payload)


def test_clean_exec_plain():
    assert clean_exec(ssh_string("ping")) == "ping"


def test_clean_exec_escapes():
    cleaned = clean_exec(ssh_string("git-upload-pack 'a$b`c'"))
    assert "$" not in cleaned
    assert "`" not in cleaned
    assert cleaned == "git-upload-pack 'ab'c'"


def test_clean_exec_bad_payload():
    assert clean_exec(b"\x00") == ""


def test_clean_repo_name_strips():
    assert clean_repo_name("'/demo.git'") == "demo"
    assert clean_repo_name("demo") == "demo"


def test_clean_repo_name_empty():
    with pytest.raises(RepoNameError, match="empty repo name"):
        clean_repo_name("")


def test_clean_repo_name_dotdot():
    with pytest.raises(RepoNameError, match="cannot change directory in file name"):
        clean_repo_name("../etc")


def test_git_pkt_line_flush_example():
    out = io.BytesIO()
    git_pkt_line(out, "a\n")
    assert out.getvalue() == b"0006a\n"


def test_git_pkt_line_error_message():
    out = io.BytesIO()
    message = f"ERR {MULTIPLE_PUSH}\n"
    git_pkt_line(out, message)
    written = out.getvalue()
    assert written == b"0024" + message.encode()
    assert int(written[:4], 16) == len(written)


def test_ssh_connection():
    remote = ("192.0.2.1", 5555)
    local = ("192.0.2.2", 2223)
    parts = ssh_connection(remote, local).split(" ")
    assert parts == ["192.0.2.1", "5555", "192.0.2.2", "2223"]


def test_ssh_connection_ipv6_tuple():
    remote = ("::1", 40000, 0, 0)
    local = ("::1", 2223, 0, 0)
    assert ssh_connection(remote, local).split(" ") == ["::1", "40000", "::1", "2223"]