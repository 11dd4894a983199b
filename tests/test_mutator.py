import os
import stat
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from lxml import etree

import config
from xml_mutator import InputFile, MutationSpec, OutputDescriptor, XmlMutator, modify_xml
from xml_mutator import planner
from xml_mutator.errors import ParseError, XPathError


@pytest.fixture(autouse=True)
def log_dir(tmp_path, monkeypatch):
    logs = tmp_path / "logs"
    monkeypatch.setattr(config, "LOG_DIR", str(logs))
    return logs


def make_source(tmp_path, xml="<a><b>old</b></a>"):
    src = tmp_path / "src"
    src.mkdir()
    (src / "root.xml").write_text(xml, encoding="utf-8")
    (src / "readme.txt").write_text("read me", encoding="utf-8")
    return src


def root_of(path):
    return etree.tostring(etree.parse(path).getroot())


def test_set_value_scenario(tmp_path):
    src = make_source(tmp_path)
    out = str(tmp_path / "out")
    outputs = modify_xml([(str(src / "root.xml"), "sub/path")], "/a/b", out, value="new")
    expected = planner.mirror_path(out, str(src / "root.xml"))
    assert outputs == [OutputDescriptor(expected, "sub/path")]
    assert root_of(expected) == b"<a><b>new</b></a>"
    assert (src / "root.xml").read_text(encoding="utf-8") == "<a><b>old</b></a>"


def test_delete_scenario(tmp_path):
    src = make_source(tmp_path)
    out = str(tmp_path / "out")
    [output] = modify_xml([str(src / "root.xml")], "/a/b", out, delete=True)
    assert root_of(output.path) == b"<a/>"
    assert output.tag == ""


def test_destination_mirrors_source_directories(tmp_path, monkeypatch):
    work = tmp_path / "work"
    (work / "dir" / "a").mkdir(parents=True)
    (work / "dir" / "a" / "b.xml").write_text("<a><b>old</b></a>", encoding="utf-8")
    monkeypatch.chdir(work)
    [output] = modify_xml([os.path.join("dir", "a", "b.xml")], "/a/b", "out", value="new")
    assert output.path == os.path.join("out", "dir", "a", "b.xml")
    assert root_of(output.path) == b"<a><b>new</b></a>"


def test_companion_file_copied_and_made_writable(tmp_path):
    src = make_source(tmp_path)
    os.chmod(src / "readme.txt", stat.S_IREAD)
    out = str(tmp_path / "out")
    try:
        [output] = modify_xml([str(src / "root.xml")], "/a/b", out, value="new")
    finally:
        os.chmod(src / "readme.txt", stat.S_IREAD | stat.S_IWRITE)
    copy = os.path.join(os.path.dirname(output.path), "readme.txt")
    assert open(copy, encoding="utf-8").read() == "read me"
    assert os.stat(copy).st_mode & stat.S_IWRITE


def test_companions_can_be_disabled(tmp_path):
    src = make_source(tmp_path)
    out = str(tmp_path / "out")
    [output] = modify_xml([str(src / "root.xml")], "/a/b", out, value="new", include_siblings=False)
    assert not os.path.exists(os.path.join(os.path.dirname(output.path), "readme.txt"))


def test_stale_output_is_cleared(tmp_path):
    src = make_source(tmp_path)
    out = tmp_path / "out"
    (out / "old").mkdir(parents=True)
    stale = out / "old" / "stale.xml"
    stale.write_text("<x/>", encoding="utf-8")
    os.chmod(stale, stat.S_IREAD)
    modify_xml([str(src / "root.xml")], "/a/b", str(out), value="new")
    assert not (out / "old").exists()


def test_outputs_follow_input_order_and_tags(tmp_path):
    src = make_source(tmp_path)
    other = tmp_path / "other"
    other.mkdir()
    (other / "second.xml").write_text('<a><b id="1"/></a>', encoding="utf-8")
    out = str(tmp_path / "out")
    files = [InputFile(str(other / "second.xml"), "two"), InputFile(str(src / "root.xml"), "one")]
    outputs = modify_xml(files, "//b", out, value="v")
    assert [o.tag for o in outputs] == ["two", "one"]
    assert [os.path.basename(o.path) for o in outputs] == ["second.xml", "root.xml"]
    assert root_of(outputs[0].path) == b'<a><b id="1">v</b></a>'


def test_cross_referenced_primary_found_as_companion(tmp_path):
    src = make_source(tmp_path)
    (src / "sub").mkdir()
    (src / "sub" / "child.xml").write_text("<a><b>old</b></a>", encoding="utf-8")
    out = str(tmp_path / "out")
    mutator = XmlMutator(out)
    spec = MutationSpec("/a/b", value="new")
    outputs = mutator.execute(
        [InputFile(str(src / "root.xml")), InputFile(str(src / "sub" / "child.xml"))], spec
    )
    assert len(outputs) == 2
    patched = [r for r in mutator.sibling_results if r.patched]
    assert [os.path.basename(r.source) for r in patched] == ["child.xml"]
    assert root_of(outputs[1].path) == b"<a><b>new</b></a>"


def test_output_inside_source_tree_is_not_copied_into_itself(tmp_path, monkeypatch):
    src = make_source(tmp_path)
    monkeypatch.chdir(src)
    [output] = modify_xml(["root.xml"], "/a/b", "obj", value="new")
    assert output.path == os.path.join("obj", "root.xml")
    assert os.path.exists(os.path.join("obj", "readme.txt"))
    assert not os.path.exists(os.path.join("obj", "obj"))


def test_parse_error_is_fatal_and_keeps_partial_output(tmp_path):
    src = make_source(tmp_path)
    broken = tmp_path / "broken"
    broken.mkdir()
    (broken / "bad.xml").write_text("<a><b></a>", encoding="utf-8")
    out = str(tmp_path / "out")
    with pytest.raises(ParseError) as err:
        modify_xml([str(src / "root.xml"), str(broken / "bad.xml")], "/a/b", out, value="new")
    assert err.value.path == str(broken / "bad.xml")
    assert os.path.exists(planner.mirror_path(out, str(src / "root.xml")))


def test_malformed_xpath_fails_before_writing(tmp_path):
    src = make_source(tmp_path)
    out = tmp_path / "out"
    with pytest.raises(XPathError):
        modify_xml([str(src / "root.xml")], "/a[", str(out), value="new")
    assert not out.exists()


def test_default_namespace_binding(tmp_path):
    src = make_source(tmp_path, '<a xmlns="urn:x"><b>old</b></a>')
    out = str(tmp_path / "out")
    [output] = modify_xml([str(src / "root.xml")], "/a/b", out, value="new", namespace="urn:x")
    assert root_of(output.path) == b'<a xmlns="urn:x"><b>new</b></a>'


def test_run_writes_log_file(tmp_path, log_dir, caplog):
    src = make_source(tmp_path)
    out = str(tmp_path / "out")
    with caplog.at_level("INFO", logger="XmlMutator"):
        modify_xml([str(src / "root.xml")], "/a/b", out, value="new")
    assert "XmlUpdate Wrote: 'new'" in caplog.text
    logs = list(log_dir.iterdir())
    assert len(logs) == 1
    text = logs[0].read_text(encoding="utf-8")
    assert "1 node(s) selected for update." in text
    assert "Updating Xml Document" in text


def test_file_logging_can_be_disabled(tmp_path, log_dir, monkeypatch):
    monkeypatch.setattr(config, "LOG_DIR", "")
    src = make_source(tmp_path)
    modify_xml([str(src / "root.xml")], "/a/b", str(tmp_path / "out"), value="new")
    assert not log_dir.exists()


def test_log_file_is_closed_after_run(tmp_path):
    src = make_source(tmp_path)
    mutator = XmlMutator(str(tmp_path / "out"))
    mutator.execute([InputFile(str(src / "root.xml"))], MutationSpec("/a/b", value="new"))
    assert mutator.logger.handlers == []


def test_log_file_is_closed_after_failure(tmp_path, log_dir):
    src = make_source(tmp_path, "<a><b></a>")
    mutator = XmlMutator(str(tmp_path / "out"))
    with pytest.raises(ParseError):
        mutator.execute([InputFile(str(src / "root.xml"))], MutationSpec("/a/b", value="new"))
    assert mutator.logger.handlers == []
    [log] = list(log_dir.iterdir())
    assert "Failed to parse XML document" in log.read_text(encoding="utf-8")


def test_log_directory_inside_source_tree_is_not_copied(tmp_path, monkeypatch):
    src = make_source(tmp_path)
    monkeypatch.chdir(src)
    monkeypatch.setattr(config, "LOG_DIR", "logs")
    [output] = modify_xml(["root.xml"], "/a/b", "obj", value="new")
    assert os.path.isdir("logs")
    assert os.path.exists(os.path.join("obj", "readme.txt"))
    assert not os.path.exists(os.path.join("obj", "logs"))
