from drill_api.utils.metadata import find_pyproject, get_project_name, get_project_version, get_pyproject_value

PYPROJECT = """
[project]
name = "drill-api"
version = "1.2.3"
"""


def test_find_pyproject_walks_up(tmp_path):
    (tmp_path / "pyproject.toml").write_text(PYPROJECT)
    nested = tmp_path / "src" / "drill_api"
    nested.mkdir(parents=True)

    assert find_pyproject(nested) == tmp_path / "pyproject.toml"


def test_get_pyproject_value(tmp_path):
    (tmp_path / "pyproject.toml").write_text(PYPROJECT)

    assert get_pyproject_value("project.version", start=tmp_path) == "1.2.3"
    assert get_pyproject_value("project.missing", start=tmp_path, default="x") == "x"


def test_invalid_toml_yields_default(tmp_path):
    (tmp_path / "pyproject.toml").write_text("[project\nname=")

    assert get_pyproject_value("project.name", start=tmp_path, default="fallback") == "fallback"


def test_project_identity():
    assert get_project_name() == "drill-api"
    assert get_project_version()
