"""Tests for the import pipeline, file reading and batch processing.

Insights are off in the `config` fixture, so nothing leaves the process.
"""

import json
import zipfile
from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from rapport.models import RawExport
from rapport.processor import (
    ExportReadError,
    ImportProcessor,
    contact_from_filename,
    read_export,
)


@pytest.fixture
def processor(config):
    return ImportProcessor(config)


class TestParse:
    def test_android_export(self, processor, android_export):
        result = processor.parse(RawExport(android_export, contact="Alice"))
        assert result.success
        assert result.format == "whatsapp"
        assert result.parser_id == "standard"
        assert result.candidate_counts == {
            "standard": 5, "international": 4, "sample": 4, "ios": 0,
        }
        assert len(result.messages) == 5
        assert result.timestamp_fallbacks == 0

    def test_unknown_format(self, processor):
        result = processor.parse(RawExport("just some notes"))
        assert not result.success
        assert "No parseable content" in result.reason
        assert result.format == "unknown"

    def test_zero_messages(self, processor):
        content = "12/31/20, 11:59 PM - Alice: <Media omitted>"
        result = processor.parse(RawExport(content))
        assert not result.success
        assert result.format == "whatsapp"
        assert result.reason == "No parseable content: no messages found"

    def test_messages_sorted_chronologically(self, processor):
        content = "\n".join([
            "2022-05-15 14:00:00,Bob,second",
            "2022-05-15 13:00:00,Bob,first",
            "2022-05-15 14:00:00,Me,third",
        ])
        result = processor.parse(RawExport(content))
        assert [m.text for m in result.messages] == ["first", "second", "third"]

    def test_unparseable_timestamp_kept_by_default(self, processor):
        content = "2022-05-15 14:00:00,Bob,fine\n2022-13-45 10:00:00,Bob,broken"
        result = processor.parse(RawExport(content))
        assert result.timestamp_fallbacks == 1
        assert len(result.messages) == 2
        assert result.messages[-1].timestamp_estimated

    def test_unparseable_timestamp_dropped(self, config):
        config.set("unparseable_timestamps", "drop")
        content = "2022-05-15 14:00:00,Bob,fine\n2022-13-45 10:00:00,Bob,broken"
        result = ImportProcessor(config).parse(RawExport(content))
        assert result.success
        assert [m.text for m in result.messages] == ["fine"]
        assert result.dropped_messages == 1

    def test_default_contact(self, config):
        config.set("default_contact", "Alice")
        content = "12/31/20, 11:59 PM - Alice: Hi\n12/31/20, 11:59 PM - Bob: Hey"
        result = ImportProcessor(config).parse(RawExport(content))
        assert [m.is_from_contact for m in result.messages] == [True, False]


class TestAnalyze:
    def test_full_record(self, processor, android_export):
        result = processor.analyze(RawExport(android_export, contact="Alice"))
        assert result.success
        assert len(result.sessions) == 3
        analytics = result.analytics
        assert analytics["messageCount"] == 5
        assert analytics["sessionCount"] == 3
        assert analytics["initiations"] == {"user": 2, "contact": 2}
        assert analytics["responseTimeByParty"]["contact"] == 120.0
        assert analytics["insightSource"] == "disabled"
        assert len(result.memories) <= 5

    def test_insights_requested_when_enabled(self, processor, android_export):
        with patch("rapport.processor.request_insights",
                   return_value=({"connectionScore": 99}, "service")) as mock_request:
            result = processor.analyze(RawExport(android_export, contact="Alice"),
                                       with_insights=True)
        assert mock_request.call_args.args[1] == "Alice"
        assert result.analytics["connectionScore"] == 99
        assert result.analytics["insightSource"] == "service"

    def test_malformed_service_reply_uses_fallback(self, processor, android_export):
        """A reply json can't load must not stop the import."""
        reply = '{"connectionScore": ' + "9" * 5000 + "}"
        with patch("rapport.llm.shutil.which", return_value="/usr/local/bin/claude"), \
                patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout=reply, stderr="")
            result = processor.analyze(RawExport(android_export, contact="Alice"),
                                       with_insights=True)
        assert result.success
        assert result.analytics["insightSource"] == "fallback"

    def test_failure_passes_through(self, processor):
        result = processor.analyze(RawExport("nothing"))
        assert not result.success
        assert result.analytics is None

    def test_result_is_json_serialisable(self, processor, ios_export):
        result = processor.analyze(RawExport(ios_export, contact="Alice"))
        data = json.loads(json.dumps(result.to_dict()))
        assert data["messages"][0]["isFromContact"] is True
        assert data["analytics"]["messagesBySender"]["Alice"] == 2


class TestReadExport:
    def test_contact_from_filename(self):
        assert contact_from_filename("WhatsApp Chat with Alice Smith.txt") == "Alice Smith"
        assert contact_from_filename("WhatsApp Chat - Bob.zip") == "Bob"
        assert contact_from_filename("_chat.txt") is None

    def test_text_file(self, tmp_path, android_export):
        path = tmp_path / "WhatsApp Chat with Alice.txt"
        path.write_bytes(b"\xef\xbb\xbf" + android_export.encode("utf-8"))
        raw = read_export(path)
        assert raw.contact == "Alice"
        assert raw.content.startswith("12/31/20")
        assert raw.name == path.name

    def test_explicit_contact_wins(self, tmp_path, android_export):
        path = tmp_path / "WhatsApp Chat with Alice.txt"
        path.write_text(android_export)
        assert read_export(path, contact="+15550100").contact == "+15550100"

    def test_zip_prefers_chat_txt(self, tmp_path, ios_export):
        path = tmp_path / "WhatsApp Chat - Alice.zip"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("notes.txt", "not this one")
            archive.writestr("_chat.txt", ios_export)
            archive.writestr("IMG-0001.jpg", b"\xff\xd8")
        raw = read_export(path)
        assert raw.content == ios_export
        assert raw.contact == "Alice"

    def test_zip_without_chat(self, tmp_path):
        path = tmp_path / "photos.zip"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("IMG-0001.jpg", b"\xff\xd8")
        with pytest.raises(ExportReadError):
            read_export(path)

    def test_bad_zip(self, tmp_path):
        path = tmp_path / "broken.zip"
        path.write_bytes(b"not a zip")
        with pytest.raises(ExportReadError):
            read_export(path)

    def test_missing_file(self, processor, tmp_path):
        result = processor.import_file(tmp_path / "nope.txt")
        assert not result.success
        assert "File not found" in result.reason


class TestProcessAll:
    def test_processes_each_export_once(self, processor, config, tmp_path, android_export, imessage_export):
        imports = tmp_path / "imports"
        imports.mkdir()
        (imports / "WhatsApp Chat with Alice.txt").write_text(android_export)
        (imports / "messages.csv").write_text(imessage_export)
        (imports / "ignore.md").write_text("# notes")

        results = processor.process_all()
        assert len(results) == 2
        assert all(r.success for r in results)

        outputs = sorted((tmp_path / "results").glob("*.json"))
        assert len(outputs) == 2
        data = json.loads(outputs[0].read_text())
        assert data["success"] is True

        # already processed: nothing pending on the second pass
        assert processor.process_all() == []

    def test_error_in_one_file_does_not_stop_batch(self, processor, tmp_path, android_export):
        imports = tmp_path / "imports"
        imports.mkdir()
        (imports / "a.txt").write_text(android_export)
        (imports / "b.txt").write_text(android_export + "\n")

        real = processor.import_file
        calls = []

        def flaky(path, *args, **kwargs):
            calls.append(path.name)
            if path.name == "a.txt":
                raise RuntimeError("boom")
            return real(path, *args, **kwargs)

        with patch.object(processor, "import_file", side_effect=flaky):
            results = processor.process_all()
        assert calls == ["a.txt", "b.txt"]
        assert len(results) == 1

    def test_recent_files_wait(self, config, tmp_path, android_export):
        config.set("stale_seconds", 3600)
        imports = tmp_path / "imports"
        imports.mkdir()
        (imports / "chat.txt").write_text(android_export)
        assert ImportProcessor(config).process_all() == []

    def test_write_result(self, processor, tmp_path):
        from rapport.models import ImportResult
        path = tmp_path / "out" / "result.json"
        processor.write_result(ImportResult(success=False, reason="nope"), path)
        assert json.loads(path.read_text())["reason"] == "nope"


class TestTimestamps:
    def test_iso_output(self, processor, imessage_export):
        result = processor.parse(RawExport(imessage_export))
        assert result.messages[0].timestamp == datetime(2022, 5, 15, 14, 23, 45)
        assert result.messages[0].to_dict()["timestamp"] == "2022-05-15T14:23:45"
