"""Tests for ProfilerConfig."""

from earshot.config import ProfilerConfig, RecommendationConfig, ThresholdConfig


class TestDefaults:
    def test_threshold_defaults(self):
        c = ThresholdConfig()
        assert c.listener_count == 100
        assert c.handler_time == 10.0
        assert c.memory_growth == 50.0
        assert c.event_frequency == 100

    def test_recommendation_defaults(self):
        c = RecommendationConfig()
        assert c.listener_count == 50
        assert c.avg_handler_time == 5.0

    def test_profiler_defaults(self):
        c = ProfilerConfig()
        assert c.update_interval == 1.0
        assert c.max_history_size == 1000
        assert c.sample_size == 100
        assert c.memory_history_size == 100
        assert c.enable_warnings is True


class TestProfilerConfigLoad:
    def test_load_defaults(self, tmp_path):
        config = ProfilerConfig.load(tmp_path)
        assert config == ProfilerConfig()

    def test_load_from_toml(self, tmp_path):
        earshot_dir = tmp_path / ".earshot"
        earshot_dir.mkdir()
        (earshot_dir / "config.toml").write_text(
            "[profiler]\nsample_size = 20\ntrack_memory = false\n"
            "[thresholds]\nhandler_time = 2.5\n"
            "[recommendations]\nlistener_count = 10\n"
        )
        config = ProfilerConfig.load(tmp_path)
        assert config.sample_size == 20
        assert config.track_memory is False
        assert config.thresholds.handler_time == 2.5
        assert config.thresholds.listener_count == 100
        assert config.recommendations.listener_count == 10

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EARSHOT_LISTENER_COUNT_THRESHOLD", "7")
        monkeypatch.setenv("EARSHOT_ENABLE_WARNINGS", "false")
        config = ProfilerConfig.load(tmp_path)
        assert config.thresholds.listener_count == 7
        assert config.enable_warnings is False

    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        earshot_dir = tmp_path / ".earshot"
        earshot_dir.mkdir()
        (earshot_dir / "config.toml").write_text("[profiler]\nupdate_interval = 5.0\n")
        monkeypatch.setenv("EARSHOT_UPDATE_INTERVAL", "0")
        config = ProfilerConfig.load(tmp_path)
        assert config.update_interval == 0.0
