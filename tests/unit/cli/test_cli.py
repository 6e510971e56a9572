"""Tests for the kiln command line."""

from unittest.mock import MagicMock, patch

import pytest

from kiln.build.flavor import BuildFlavor
from kiln.build.orchestrator import BuildResult
from kiln.cli import BuildArgs, build_command, main


@pytest.fixture
def project_dir(tmp_path, config_writer):
    """Project directory with a kiln.ini so CLI validation passes."""
    config_writer(tmp_path, "g++")
    return tmp_path


@pytest.fixture
def success_result(tmp_path):
    return BuildResult(
        success=True,
        build_time=1.5,
        message="Build successful",
        binary_path=tmp_path / "build" / "debug" / "bin" / "hello",
    )


@pytest.fixture
def failure_result():
    return BuildResult(success=False, build_time=0.5, message="Error in the code: src/main.cpp")


class TestCLIBuild:
    """Tests for the 'kiln build' command."""

    @pytest.fixture
    def mock_orchestrator(self):
        """Replace BuildOrchestrator in the CLI with a mock."""
        with patch("kiln.cli.BuildOrchestrator") as mock_orch_class:
            mock_instance = MagicMock()
            mock_orch_class.return_value = mock_instance
            yield mock_instance

    def test_build_debug_by_default(self, mock_orchestrator, success_result, project_dir, capsys):
        mock_orchestrator.build.return_value = success_result

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build"])

        assert exc_info.value.code == 0
        mock_orchestrator.build.assert_called_once_with(BuildFlavor.DEBUG)
        assert "Build successful" in capsys.readouterr().out

    def test_build_release(self, mock_orchestrator, success_result, project_dir):
        mock_orchestrator.build.return_value = success_result

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build", "release"])

        assert exc_info.value.code == 0
        mock_orchestrator.build.assert_called_once_with(BuildFlavor.RELEASE)

    def test_build_static_library(self, mock_orchestrator, success_result, project_dir):
        mock_orchestrator.build_library.return_value = success_result

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build", "lib", "static"])

        assert exc_info.value.code == 0
        mock_orchestrator.build_library.assert_called_once_with(BuildFlavor.STATIC)

    def test_build_dynamic_library(self, mock_orchestrator, success_result, project_dir):
        mock_orchestrator.build_library.return_value = success_result

        with pytest.raises(SystemExit):
            main(["-C", str(project_dir), "build", "lib", "dynamic"])

        mock_orchestrator.build_library.assert_called_once_with(BuildFlavor.DYNAMIC)

    def test_build_module(self, mock_orchestrator, success_result, project_dir):
        with patch("kiln.cli.ModuleManager") as mock_manager_class:
            mock_manager_class.return_value.build.return_value = success_result

            with pytest.raises(SystemExit) as exc_info:
                main(["-C", str(project_dir), "build", "module", "net", "-r"])

        assert exc_info.value.code == 0
        mock_manager_class.return_value.build.assert_called_once_with("net", release=True)

    def test_progress_can_be_disabled(self, project_dir, success_result):
        with patch("kiln.cli.BuildOrchestrator") as mock_orch_class:
            mock_orch_class.return_value.build.return_value = success_result

            with pytest.raises(SystemExit):
                main(["-C", str(project_dir), "build", "--no-progress"])

        assert mock_orch_class.call_args.kwargs["show_progress"] is False

    def test_build_failure(self, mock_orchestrator, failure_result, project_dir, capsys):
        mock_orchestrator.build.return_value = failure_result

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build"])

        assert exc_info.value.code == 1
        captured = capsys.readouterr()
        assert "Build failed" in captured.out
        assert "Error in the code: src/main.cpp" in captured.out

    def test_build_permission_error(self, mock_orchestrator, project_dir, capsys):
        mock_orchestrator.build.side_effect = PermissionError("Cannot write to build directory")

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build"])

        assert exc_info.value.code == 1
        assert "Permission denied" in capsys.readouterr().out

    def test_build_keyboard_interrupt(self, mock_orchestrator, project_dir, capsys):
        mock_orchestrator.build.side_effect = KeyboardInterrupt()

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build"])

        assert exc_info.value.code == 130
        assert "interrupted" in capsys.readouterr().out

    def test_build_unexpected_error_verbose(self, mock_orchestrator, project_dir, capsys):
        mock_orchestrator.build.side_effect = RuntimeError("Unexpected error occurred")

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "-v", "build"])

        assert exc_info.value.code == 1
        captured = capsys.readouterr()
        assert "RuntimeError" in captured.out
        assert "Traceback:" in captured.out

    def test_module_build_needs_name(self, mock_orchestrator, project_dir):
        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build", "module"])

        assert exc_info.value.code == 2

    def test_lib_build_needs_kind(self, mock_orchestrator, project_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build", "lib", "shared"])

        assert exc_info.value.code == 2
        assert "'static' or 'dynamic'" in capsys.readouterr().err

    def test_unknown_target(self, project_dir):
        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "build", "profile"])

        assert exc_info.value.code == 2

    def test_build_log_is_written(self, mock_orchestrator, success_result, project_dir):
        mock_orchestrator.build.return_value = success_result

        with pytest.raises(SystemExit):
            main(["-C", str(project_dir), "build"])

        assert (project_dir / "build" / "kiln.log").exists()


class TestCLIModule:
    """Tests for the 'kiln module' command."""

    def test_add(self, project_dir):
        with patch("kiln.cli.ModuleManager") as mock_manager_class:
            with pytest.raises(SystemExit) as exc_info:
                main(["-C", str(project_dir), "module", "add", "net"])

        assert exc_info.value.code == 0
        mock_manager_class.return_value.add.assert_called_once_with("net")

    def test_remove(self, project_dir):
        with patch("kiln.cli.ModuleManager") as mock_manager_class:
            with pytest.raises(SystemExit) as exc_info:
                main(["-C", str(project_dir), "module", "remove", "net"])

        assert exc_info.value.code == 0
        mock_manager_class.return_value.remove.assert_called_once_with("net")

    def test_add_missing_directory(self, project_dir, capsys):
        (project_dir / "src").mkdir()

        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(project_dir), "module", "add", "net"])

        assert exc_info.value.code == 1
        assert "The directory was not found: net" in capsys.readouterr().out


class TestCLIValidation:
    """Project directory and configuration checks."""

    def test_nonexistent_project_dir(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(tmp_path / "missing"), "build"])

        assert exc_info.value.code == 2
        assert "Path does not exist" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-C", str(tmp_path), "build"])

        assert exc_info.value.code == 2
        assert "kiln.ini not found" in capsys.readouterr().out

    def test_help_without_command(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 0
        assert "usage: kiln" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "kiln 0.1.0" in capsys.readouterr().out

    @pytest.mark.parametrize("target", ["module", "lib"])
    def test_named_target_without_name(self, project_dir, target, capsys):
        with patch("kiln.cli.BuildOrchestrator") as orchestrator:
            with pytest.raises(SystemExit) as exc_info:
                build_command(BuildArgs(project_dir, target=target))

        assert exc_info.value.code == 2
        assert f"kiln build {target} needs a name" in capsys.readouterr().out
        orchestrator.assert_not_called()
