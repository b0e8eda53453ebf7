from hub.registry import MODULES_PATH, load_modules, read_manifest


def _write_manifest(root, folder, text):
    module_dir = root / folder
    module_dir.mkdir()
    (module_dir / "module.yaml").write_text(text, encoding="utf-8")
    return module_dir


def test_manifest_defaults(tmp_path):
    module_dir = _write_manifest(tmp_path, "sales_report", "name: sales_report\n")

    modules = load_modules(tmp_path)

    meta = modules["sales_report"]
    assert meta["slug"] == "sales-report"
    assert meta["mount"] == "/sales-report"
    assert meta["public"] is True
    assert meta["path"] == module_dir


def test_mount_gets_leading_slash(tmp_path):
    module_dir = _write_manifest(tmp_path, "a", "name: a\nmount: reports\npublic: false\n")

    meta = read_manifest(module_dir)

    assert meta["mount"] == "/reports"
    assert meta["public"] is False


def test_dirs_without_usable_manifest_are_skipped(tmp_path):
    (tmp_path / "empty").mkdir()
    _write_manifest(tmp_path, "nameless", "title: No name\n")
    _write_manifest(tmp_path, "listy", "- name: x\n")
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")

    assert load_modules(tmp_path) == {}
    assert load_modules(tmp_path / "missing") == {}


def test_first_manifest_wins_on_duplicate_names(tmp_path):
    _write_manifest(tmp_path, "a_first", "name: shared\nmount: /one\n")
    _write_manifest(tmp_path, "b_second", "name: shared\nmount: /two\n")

    modules = load_modules(tmp_path)

    assert modules["shared"]["mount"] == "/one"


def test_bundled_profiler_module_is_found():
    meta = load_modules(MODULES_PATH)["dataset_profiler"]

    assert meta["mount"] == "/datasets"
    assert meta["entrypoints"]["api"] == "modules.dataset_profiler.tool.app:app"
