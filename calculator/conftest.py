import pytest

@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    # Keep developer .env files and SHUNTING_CALC_* variables out of the tests.
    monkeypatch.chdir(tmp_path)
    for key in ("SHUNTING_CALC_HISTORY", "SHUNTING_CALC_PRECISION", "SHUNTING_CALC_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)

@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")
