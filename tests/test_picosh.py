from pathlib import Path

from concurkit.picosh import Command, parse_line, run_line


def test_parse_redirections():
    assert parse_line("cat < in > out") == [Command(["cat"], "in", "out")]


def test_parse_without_spaces():
    assert parse_line("cat<in>out") == [Command(["cat"], "in", "out")]


def test_parse_pipeline():
    commands = parse_line("ls -l | wc\n")
    assert [c.argv for c in commands] == [["ls", "-l"], ["wc"]]


def test_parse_leftmost_redirection_wins():
    assert parse_line("echo a > x > y")[0].stdout == "x"


def test_parse_empty():
    commands = parse_line("   \n")
    assert len(commands) == 1
    assert commands[0].is_empty


def test_run_to_file_object(tmp_path):
    out = tmp_path / "o"
    with open(out, "wb") as handle:
        codes = run_line("echo hi", handle)
    assert codes == [0]
    assert out.read_bytes() == b"hi\n"


def test_run_pipeline(tmp_path):
    out = tmp_path / "o"
    with open(out, "wb") as handle:
        run_line("echo hello | tr a-z A-Z", handle)
    assert out.read_bytes() == b"HELLO\n"


def test_run_redirections(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "in").write_bytes(b"data\n")
    assert run_line("cat < in > out") == [0]
    assert (tmp_path / "out").read_bytes() == b"data\n"


def test_cd_builtin(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "sub").mkdir()
    assert run_line("cd sub") == []
    assert Path.cwd().resolve() == (tmp_path / "sub").resolve()


def test_cd_failure_reports(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    run_line("cd missing-dir")
    assert capsys.readouterr().err == "?\n"
    assert Path.cwd().resolve() == tmp_path.resolve()


def test_unknown_command_reports(capsys):
    assert run_line("no-such-command-zz") == []
    assert capsys.readouterr().err == "?\n"


def test_empty_line_runs_nothing():
    assert run_line("\n") == []