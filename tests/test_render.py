import os
import stat
from pathlib import Path

import pytest
from jinja2 import DictLoader, Environment, StrictUndefined

from lvsflow.exceptions import RenderError
from lvsflow.models.lvs import RunFileOptions
from lvsflow.render import (RUN_SCRIPT_NAME, RUN_SCRIPT_TEMPLATE, SETUP_FILE_NAME,
                            TemplateRenderer, create_run_file, write_file,
                            write_setup_file)


@pytest.fixture
def run_file_options(tmp_path):
    return RunFileOptions(
        layout_netlist=tmp_path / "netlist_ext.spice",
        layout_cell="my_layout_cell",
        schematic_netlist=tmp_path / "netlist.spice",
        schematic_cell="my_netlist_cell",
        setup_file=tmp_path / "setup.tcl",
        output_file=tmp_path / "lvs.out",
    )


def test_create_run_file(tmp_path, run_file_options):
    run_file = create_run_file(run_file_options, tmp_path)
    assert run_file == tmp_path / RUN_SCRIPT_NAME

    output = run_file.read_text()

    # Every slot value is in the script
    assert str(tmp_path / "netlist_ext.spice") in output
    assert str(tmp_path / "netlist.spice") in output
    assert "my_netlist_cell" in output
    assert "my_layout_cell" in output
    assert str(tmp_path / "setup.tcl") in output
    assert str(tmp_path / "lvs.out") in output

    # Netgen invocation
    assert "netgen" in output
    assert "lvs" in output
    assert "noconsole" in output
    assert "full" in output
    assert "json" in output
    assert "quit" in output
    assert output.startswith("#!")


def test_run_file_never_references_layout(tmp_path, run_file_options):
    # Netgen cannot read layout files; only the extracted netlist may appear
    output = create_run_file(run_file_options, tmp_path).read_text()
    assert ".mag" not in output
    assert ".gds" not in output


def test_run_file_is_executable(tmp_path, run_file_options):
    run_file = create_run_file(run_file_options, tmp_path)
    assert os.access(run_file, os.X_OK)
    assert run_file.stat().st_mode & stat.S_IXUSR


def test_run_file_custom_netgen(tmp_path, run_file_options):
    opts = run_file_options.model_copy(update={"netgen_bin": "/opt/eda/bin/netgen"})
    output = create_run_file(opts, tmp_path).read_text()
    assert output.splitlines()[3].startswith("/opt/eda/bin/netgen -noconsole")


def test_missing_slot_is_an_error(tmp_path):
    renderer = TemplateRenderer()
    with pytest.raises(RenderError, match="missing a value"):
        renderer.render_to_file(
            RUN_SCRIPT_TEMPLATE,
            {"layout_netlist": "a.spice", "layout_cell": "a"},
            tmp_path / RUN_SCRIPT_NAME,
            executable=True,
        )
    assert not (tmp_path / RUN_SCRIPT_NAME).exists()


def test_malformed_template_is_an_error(tmp_path):
    env = Environment(loader=DictLoader({"bad.j2": "{% if %}"}), undefined=StrictUndefined)
    renderer = TemplateRenderer(env)
    with pytest.raises(RenderError, match="Cannot render"):
        renderer.render_to_file("bad.j2", {}, tmp_path / "bad")
    assert not (tmp_path / "bad").exists()


def test_unknown_template_is_an_error():
    with pytest.raises(RenderError):
        TemplateRenderer().render("does_not_exist.j2", {})


def test_empty_render_is_an_error():
    env = Environment(loader=DictLoader({"empty.j2": "{% if x %}text{% endif %}\n"}))
    with pytest.raises(RenderError, match="empty"):
        TemplateRenderer(env).render("empty.j2", {"x": False})


def test_write_file_replaces_with_new_mode(tmp_path):
    dest = tmp_path / "script.sh"
    dest.write_text("old")
    dest.chmod(0o644)

    write_file(dest, "#!/bin/sh\n", 0o755)
    assert dest.read_text() == "#!/bin/sh\n"
    assert os.access(dest, os.X_OK)
    # No temporary files left behind
    assert [p.name for p in tmp_path.iterdir()] == ["script.sh"]


def test_write_file_into_missing_directory(tmp_path):
    with pytest.raises(RenderError, match="Cannot write") as excinfo:
        write_file(tmp_path / "missing" / "script.sh", "#!/bin/sh\n", 0o755)
    assert excinfo.value.stage == "render"


def test_create_run_file_into_missing_directory(tmp_path, run_file_options):
    with pytest.raises(RenderError):
        create_run_file(run_file_options, tmp_path / "missing")


def test_write_setup_file(tmp_path):
    path = write_setup_file("permute default\n", tmp_path)
    assert path == tmp_path / SETUP_FILE_NAME
    assert path.read_text() == "permute default\n"
    assert not os.access(path, os.X_OK)
