from app.domains.reports.validation import ALLOWED_EXTENSIONS, is_valid_format


def test_accepts_known_result_formats():
    for name in ["results.json", "junit.xml", "report.html", "runs.csv", "notes.txt", "pytest.log"]:
        assert is_valid_format(name), name


def test_extension_is_case_insensitive():
    assert is_valid_format("RESULTS.JSON")
    assert is_valid_format("Suite.Xml")


def test_rejects_unknown_or_missing_extension():
    assert not is_valid_format("results.exe")
    assert not is_valid_format("results")
    assert not is_valid_format(".log")
    assert not is_valid_format("")
    assert not is_valid_format("archive.json.zip")


def test_only_last_suffix_counts():
    assert is_valid_format("archive.zip.json")
    assert "json" in ALLOWED_EXTENSIONS
