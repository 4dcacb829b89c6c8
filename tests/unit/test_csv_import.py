"""
Unit tests for the industry CSV importer.

Both header layouts are accepted; existing names are skipped; a bad row is
reported with its line number and does not stop the rest of the file.
"""
import pytest


ENGLISH = (
    "Tier 1 Industry,Tier 2 Sub Industry,AWS Definition\n"
    "Retail,Grocery,Food retail\n"
    "Retail,Fashion,Apparel\n"
    "Energy,Utilities,Power and water\n"
)

CHINESE = (
    "行业名称,行业定义,子行业名称,子行业定义,典型全球企业,典型中国企业\n"
    '零售,零售行业,生鲜,生鲜零售,"Walmart, Tesco","盒马, 永辉"\n'
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def test_parse_english_layout_reuses_definition():
    from industry_service.csv_import import parse_csv

    rows = parse_csv(ENGLISH)
    assert len(rows) == 3
    assert rows[0].industry_name == "Retail"
    assert rows[0].sub_industry_name == "Grocery"
    assert rows[0].industry_definition == rows[0].sub_industry_definition == "Food retail"


def test_parse_chinese_layout_splits_company_lists():
    from industry_service.csv_import import parse_csv

    (row,) = parse_csv(CHINESE)
    assert row.industry_name == "零售"
    assert row.sub_industry_definition == "生鲜零售"
    assert row.global_companies == ["Walmart", "Tesco"]
    assert row.chinese_companies == ["盒马", "永辉"]


def test_parse_strips_byte_order_mark():
    from industry_service.csv_import import parse_csv

    rows = parse_csv("\ufeff" + ENGLISH)
    assert rows[0].industry_name == "Retail"


@pytest.mark.parametrize(
    "content, message",
    [
        ("", "CSV content is empty"),
        ("Name,Description\nRetail,Stores\n", "CSV is missing required columns"),
        ("Tier 1 Industry,Tier 2 Sub Industry,AWS Definition\n", "CSV has no data rows"),
    ],
)
def test_parse_rejects_unusable_files(content, message):
    from industry_service.csv_import import parse_csv
    from portal_shared.errors import ValidationError

    with pytest.raises(ValidationError) as exc_info:
        parse_csv(content)
    assert exc_info.value.message.startswith(message)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def test_import_creates_industries_once_and_sub_industries_per_row(portal):
    from industry_service.csv_import import CsvImporter

    result = CsvImporter(portal).run(ENGLISH, created_by="admin-1")

    assert result.to_dict() == {"successCount": 5, "skipCount": 0, "errorCount": 0, "errors": []}
    industries = portal.industries.scan()["Items"]
    assert sorted(i["name"] for i in industries) == ["Energy", "Retail"]
    assert all(i["version"] == 0 for i in industries)
    subs = portal.sub_industries.scan()["Items"]
    assert sorted(s["name"] for s in subs) == ["Fashion", "Grocery", "Utilities"]


def test_reimport_skips_existing_records(portal):
    from industry_service.csv_import import CsvImporter

    CsvImporter(portal).run(ENGLISH, created_by="admin-1")
    result = CsvImporter(portal).run(ENGLISH, created_by="admin-1")

    # two existing industries + three existing sub-industries
    assert result.success_count == 0
    assert result.skip_count == 5
    assert len(portal.sub_industries.scan()["Items"]) == 3


def test_row_without_names_is_reported_and_import_continues(portal):
    from industry_service.csv_import import CsvImporter

    content = (
        "Tier 1 Industry,Tier 2 Sub Industry,AWS Definition\n"
        "Retail,,Food retail\n"
        "Retail,Grocery,Food retail\n"
    )
    result = CsvImporter(portal).run(content, created_by="admin-1")

    assert result.error_count == 1
    assert result.errors == ["Row 2: industry name and sub-industry name are required"]
    assert result.success_count == 2


def test_imported_sub_industries_carry_company_lists(portal):
    from industry_service.csv_import import CsvImporter

    CsvImporter(portal).run(CHINESE, created_by="admin-1")
    (sub,) = portal.sub_industries.scan()["Items"]
    assert sub["typicalGlobalCompanies"] == ["Walmart", "Tesco"]
    assert sub["PK"] == f"INDUSTRY#{sub['industryId']}"
