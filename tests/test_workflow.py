"""Workflow commands tests."""

from testflows.ec2.runner.workflow import set_output, set_failed


def test_set_output_to_file(tmp_path, monkeypatch):
    path = tmp_path / "output"
    path.write_text("previous=value\n")
    monkeypatch.setenv("GITHUB_OUTPUT", str(path))

    set_output("label", "ab3de")
    set_output("ec2-instance-id", "i-0123")

    assert path.read_text() == (
        "previous=value\nlabel=ab3de\nec2-instance-id=i-0123\n"
    )


def test_set_output_without_file(capsys):
    set_output("label", "ab3de")

    assert capsys.readouterr().out == "::set-output name=label::ab3de\n"


def test_set_failed_escapes_message(capsys):
    set_failed("first line\nsecond 100%")

    assert capsys.readouterr().out == "::error::first line%0Asecond 100%25\n"
