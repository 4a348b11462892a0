"""Unit tests for staging directory management."""

from pathlib import Path

import pytest

from nbuild.packages.cache import TEMP_DIR_ENV, StagingCache, StagingCacheError


class TestStagingCache:
    """Test cases for StagingCache."""

    def test_default_temp_root(self, project_dir, monkeypatch):
        """Temp root defaults to {project}/tmp."""
        monkeypatch.delenv(TEMP_DIR_ENV, raising=False)
        cache = StagingCache(project_dir)

        assert cache.temp_root == project_dir.resolve() / "tmp"

    def test_default_project_dir_is_cwd(self, project_dir, monkeypatch):
        monkeypatch.delenv(TEMP_DIR_ENV, raising=False)
        monkeypatch.chdir(project_dir)

        cache = StagingCache()

        assert cache.project_dir == project_dir.resolve()

    def test_env_override(self, project_dir, tmp_path, monkeypatch):
        custom = tmp_path / "custom_tmp"
        monkeypatch.setenv(TEMP_DIR_ENV, str(custom))

        cache = StagingCache(project_dir)

        assert cache.temp_root == custom.resolve()

    def test_explicit_temp_dir_beats_env(self, project_dir, tmp_path, monkeypatch):
        monkeypatch.setenv(TEMP_DIR_ENV, str(tmp_path / "from_env"))

        cache = StagingCache(project_dir, temp_dir="native-tmp")

        assert cache.temp_root == project_dir.resolve() / "native-tmp"

    def test_library_and_object_dirs(self, cache):
        """Both trees are keyed by os and arch."""
        assert cache.get_library_dir("linux", "amd64") == cache.temp_root / "compiled" / "linux" / "amd64"
        assert cache.get_object_dir("linux", "amd64") == cache.temp_root / "objects" / "linux" / "amd64"

    def test_paths_are_stable(self, project_dir):
        first = StagingCache(project_dir, temp_dir="tmp").get_library_dir("linux", "amd64")
        second = StagingCache(project_dir, temp_dir="tmp").get_library_dir("linux", "amd64")

        assert first == second

    def test_empty_temp_root_is_invalid(self, project_dir):
        cache = StagingCache(project_dir, temp_dir="  ")

        with pytest.raises(StagingCacheError):
            cache.get_library_dir("linux", "amd64")

    def test_temp_root_that_is_a_file_is_invalid(self, project_dir):
        (project_dir / "tmp").write_text("not a directory")
        cache = StagingCache(project_dir, temp_dir="tmp")

        with pytest.raises(StagingCacheError) as exc_info:
            cache.validate()

        assert "not a directory" in str(exc_info.value)

    def test_clean_single_platform(self, cache):
        for arch in ("amd64", "aarch64"):
            cache.get_library_dir("linux", arch).mkdir(parents=True)
            cache.get_object_dir("linux", arch).mkdir(parents=True)
        (cache.get_library_dir("linux", "amd64") / "libdeflate_jni.so").touch()

        cache.clean("linux", "amd64")

        assert not cache.get_library_dir("linux", "amd64").exists()
        assert not cache.get_object_dir("linux", "amd64").exists()
        assert cache.get_library_dir("linux", "aarch64").exists()

    def test_clean_all(self, cache):
        cache.get_library_dir("linux", "amd64").mkdir(parents=True)
        cache.get_object_dir("linux", "amd64").mkdir(parents=True)

        cache.clean_all()

        assert not cache.compiled_root.exists()
        assert not cache.objects_root.exists()

    def test_clean_nonexistent(self, cache):
        """Cleaning missing directories is a no-op."""
        cache.clean("linux", "amd64")
        cache.clean_all()

        assert not Path(cache.temp_root).exists()
