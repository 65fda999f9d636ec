"""Shared fixtures."""

import pytest

from codebase_whisperer.source import FileInput, build_source_file


def make_source(path, content=""):
    """Build a scanned SourceFile from a path and its text."""
    return build_source_file(FileInput.from_text(path, content))


@pytest.fixture
def source():
    return make_source


@pytest.fixture
def web_repo(tmp_path):
    """Create a small React + Express repo with an MVC layout."""
    (tmp_path / "package.json").write_text(
        '{"name": "shop", "dependencies": {"react": "^18.2.0", "express": "^4.18.0"},'
        ' "devDependencies": {"jest": "^29.0.0"}}'
    )
    (tmp_path / "README.md").write_text("# Shop\nA demo shop.\n")

    src = tmp_path / "src"
    src.mkdir()
    (src / "index.js").write_text(
        "import App from './app';\n"
        "import express from 'express';\n"
        "const server = express();\n"
        "server.listen(3000);\n"
    )
    (src / "app.js").write_text(
        "export default function App() {\n"
        "  return render();\n"
        "}\n"
    )

    for folder, name in (("models", "user.js"), ("views", "home.js"), ("controllers", "home.js")):
        (tmp_path / folder).mkdir()
        (tmp_path / folder / name).write_text("module.exports = {};\n")

    # Ignored content
    (tmp_path / "node_modules" / "left-pad").mkdir(parents=True)
    (tmp_path / "node_modules" / "left-pad" / "index.js").write_text("module.exports = 1;\n")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")
    (tmp_path / "blob.dat").write_bytes(b"abc\x00def")

    return tmp_path
