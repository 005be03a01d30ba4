from pathlib import Path

from database import DatabaseManager, decode_value, encode_value
from database.codec import value_format
from helpers import build_db_paths, build_manager


def test_database_range_query_and_update(tmp_path: Path) -> None:
    manager = build_manager(tmp_path)
    manager.insert_owners([1, 2, 3])
    first = manager.insert_meta(1, "field", {"a": 1})
    manager.insert_meta(2, "other", "plain")
    manager.insert_meta(3, "third", "x")

    records = manager.fetch_meta_range(0, 2)
    assert [record.post_id for record in records] == [1, 2]
    assert manager.count_owners() == 3

    manager.update_meta_value(first, ["fixed"])
    updated = manager.get_meta_by_id(first)
    assert updated is not None
    assert decode_value(updated.meta_value) == ["fixed"]
    assert manager.get_meta_by_id(999) is None
    manager.close()


def test_database_options_and_flag(tmp_path: Path) -> None:
    manager = build_manager(tmp_path)

    assert manager.get_option("missing", "0") == "0"
    manager.update_option("offset", "1000")
    assert manager.get_option("offset") == "1000"

    assert manager.acquire_option_flag("lock") is True
    assert manager.acquire_option_flag("lock") is False
    manager.update_option("lock", "0")
    assert manager.acquire_option_flag("lock") is True

    manager.delete_option("offset")
    assert manager.get_option("offset") is None
    manager.close()


def test_database_flag_is_shared_between_connections(tmp_path: Path) -> None:
    first = build_manager(tmp_path)
    second = DatabaseManager(build_db_paths(tmp_path))

    assert first.acquire_option_flag("lock") is True
    assert second.acquire_option_flag("lock") is False

    first.close()
    second.close()


def test_codec_keeps_plain_text_and_decodes_containers() -> None:
    assert decode_value('{"k": [1, 2]}') == {"k": [1, 2]}
    assert decode_value(b"[1, 2]") == [1, 2]
    assert decode_value("plain text") == "plain text"
    assert decode_value("{not json}") == "{not json}"
    assert decode_value(b"\xff\xfe") == b"\xff\xfe"
    decoded = {"already": "decoded"}
    assert decode_value(decoded) is decoded
    assert decode_value(decode_value('["x"]')) == ["x"]

    assert encode_value(None) == ""
    assert encode_value("text") == "text"
    assert decode_value(encode_value({"a": [1]})) == {"a": [1]}


def test_codec_reads_php_serialized_arrays() -> None:
    assert decode_value('a:2:{i:0;s:1:"A";i:1;s:1:"B";}') == ["A", "B"]
    assert decode_value('a:1:{s:5:"title";s:3:"hé";}') == {"title": "hé"}
    assert decode_value('a:2:{i:3;s:1:"x";s:1:"k";b:1;}') == {3: "x", "k": True}
    assert decode_value('s:5:"hello";') == 's:5:"hello";'
    assert decode_value('a:1:{i:0;s:9:"broken";}') == 'a:1:{i:0;s:9:"broken";}'

    assert value_format('a:1:{i:0;s:1:"x";}') == "php"
    assert value_format('{"a": 1}') == "json"
    assert value_format("plain") == "text"
    assert encode_value(["x"], "php") == 'a:1:{i:0;s:1:"x";}'
    assert encode_value({"k": [1]}, "php") == 'a:1:{s:1:"k";a:1:{i:0;i:1;}}'
    assert encode_value(True, "php") == "1"


def test_codec_leaves_too_deep_text_undecoded() -> None:
    deep_json = "[" * 3000 + "]" * 3000
    deep_php = "a:1:{i:0;" * 3000 + "N;" + "}" * 3000

    assert decode_value(deep_json) == deep_json
    assert decode_value(deep_php) == deep_php


def test_flag_is_set_only_by_its_exact_value(tmp_path: Path) -> None:
    manager = build_manager(tmp_path)
    manager.update_option("lock", "true")

    assert manager.is_option_flag_set("lock") is False
    assert manager.acquire_option_flag("lock") is True
    assert manager.is_option_flag_set("lock") is True
    assert manager.acquire_option_flag("lock") is False
    manager.close()
