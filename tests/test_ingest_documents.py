"""Tests for the vo2max-ingest command line."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import patch
import ingest_documents
from services.chunk_ingestor import ChunkIngestor, chunk_directory
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.errors import ConfigurationError
from services.vector_store import InMemoryVectorStore


class FakeEmbedder:

    def embed(self, text):
        return [float(len(text)), 1.0]


@pytest.fixture
def output_dir(tmp_path):
    directory = tmp_path / "pdfs-output"
    directory.mkdir()
    (directory / "paper1.txt").write_text("Zone 2 training builds mitochondria.", encoding="utf-8")
    (directory / "paper2.txt").write_text("Tabata raised VO2max by 13%.", encoding="utf-8")
    return directory


@pytest.fixture
def ingestor(tmp_path):
    return ChunkIngestor(
        DocumentLoader(docs_directory=tmp_path / "pdfs"),
        ChunkingEngine(),
        FakeEmbedder(),
        InMemoryVectorStore(),
    )


def argv(output_dir, *rest):
    return ["--output-dir", str(output_dir), *rest]


class TestParser:

    def test_subcommand_required(self):
        """The command line requires a subcommand."""
        with pytest.raises(SystemExit):
            ingest_documents.build_parser().parse_args([])

    def test_verify_flags(self, tmp_path):
        """The verify subcommand parses its flags and handler."""
        args = ingest_documents.build_parser().parse_args(["--pdf-dir", str(tmp_path), "verify", "--yes"])

        assert args.yes is True
        assert args.pdf_dir == tmp_path
        assert args.handler is ingest_documents.run_verify


class TestVerifyCommand:

    def test_nothing_missing(self, ingestor, output_dir, capsys):
        """Verify reports success without prompting when nothing is missing."""
        ingestor.upload_directory(output_dir)
        args = ingest_documents.build_parser().parse_args(argv(output_dir, "verify"))

        with patch.object(ingest_documents, "build_ingestor", return_value=ingestor):
            code = ingest_documents.run_verify(args, confirm=lambda prompt: pytest.fail("should not prompt"))

        out = capsys.readouterr().out
        assert code == 0
        assert "All local chunks are uploaded to Supabase!" in out
        assert "Local chunks: 2, Uploaded: 2" in out

    def test_declined_reupload(self, ingestor, output_dir, capsys):
        """Declining the prompt lists missing chunks and uploads nothing."""
        args = ingest_documents.build_parser().parse_args(argv(output_dir, "verify"))

        with patch.object(ingest_documents, "build_ingestor", return_value=ingestor):
            code = ingest_documents.run_verify(args, confirm=lambda prompt: "n")

        out = capsys.readouterr().out
        assert code == 1
        assert "paper1.pdf [chunk 0]" in out
        assert "Total missing: 2" in out
        assert "No chunks were re-uploaded." in out
        assert ingestor.vector_store.count() == 0

    def test_confirmed_reupload(self, ingestor, output_dir, capsys):
        """Confirming the prompt re-uploads the missing chunks."""
        local = chunk_directory(ingestor.chunker, output_dir)
        ingestor.upload_chunks(local["paper1.pdf"])
        args = ingest_documents.build_parser().parse_args(argv(output_dir, "verify"))

        with patch.object(ingest_documents, "build_ingestor", return_value=ingestor):
            code = ingest_documents.run_verify(args, confirm=lambda prompt: "y")

        out = capsys.readouterr().out
        assert code == 0
        assert "Total missing: 1" in out
        assert "Re-upload complete: 1 uploaded, 0 failed." in out
        assert ingestor.vector_store.count() == 2

    def test_yes_skips_prompt(self, ingestor, output_dir):
        """The --yes flag re-uploads without asking."""
        with patch.object(ingest_documents, "build_ingestor", return_value=ingestor):
            code = ingest_documents.main(argv(output_dir, "verify", "--yes"))

        assert code == 0
        assert ingestor.vector_store.count() == 2


class TestMain:

    def test_upload(self, ingestor, output_dir):
        """The upload subcommand stores every chunk."""
        with patch.object(ingest_documents, "build_ingestor", return_value=ingestor):
            code = ingest_documents.main(argv(output_dir, "upload"))

        assert code == 0
        assert ingestor.vector_store.list_chunk_keys() == {("paper1.pdf", 0), ("paper2.pdf", 0)}

    def test_extract_empty_directory(self, tmp_path):
        """Extracting an empty directory succeeds and creates the output directory."""
        code = ingest_documents.main(
            ["--pdf-dir", str(tmp_path / "pdfs"), "--output-dir", str(tmp_path / "out"), "extract"]
        )

        assert code == 0
        assert (tmp_path / "out").is_dir()

    def test_configuration_error_is_reported(self, output_dir):
        """A configuration error exits with status 1."""
        with patch.object(
            ingest_documents, "build_ingestor", side_effect=ConfigurationError("OPENAI_API_KEY environment variable is required")
        ):
            assert ingest_documents.main(argv(output_dir, "upload")) == 1
