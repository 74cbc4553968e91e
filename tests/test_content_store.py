from podadmin.content.content_store import ContentFileStore


def test_reads_file_under_root(tmp_path) -> None:
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "pod.md").write_text("# Pod", encoding="utf-8")

    assert ContentFileStore(tmp_path).read("docs/pod.md") == "# Pod"


def test_missing_empty_and_directory_paths_are_none(tmp_path) -> None:
    (tmp_path / "folder").mkdir()
    store = ContentFileStore(tmp_path)

    assert store.read("nope.md") is None
    assert store.read("") is None
    assert store.read(None) is None
    assert store.read("folder") is None


def test_refuses_paths_outside_root(tmp_path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("do not serve", encoding="utf-8")
    store = ContentFileStore(root)

    assert store.read("../secret.txt") is None
    assert store.read(str(tmp_path / "secret.txt")) is None


def test_stage_markdown_location(tmp_path) -> None:
    stages = tmp_path / "content" / "stages"
    stages.mkdir(parents=True)
    (stages / "caching.md").write_text("cache notes", encoding="utf-8")
    store = ContentFileStore(tmp_path)

    assert store.read_stage_markdown("caching") == "cache notes"
    assert store.read_stage_markdown(None) is None
    assert store.read_stage_markdown("../../escape") is None


def test_undecodable_file_is_none(tmp_path) -> None:
    (tmp_path / "binary.md").write_bytes(b"\xff\xfe\xfa")

    assert ContentFileStore(tmp_path).read("binary.md") is None
