import pytest

from src.integrations.contracts.errors import HTTPStatusFailure, NetworkUnavailable
from src.matrix.catalogue import CodeCatalogue

PDF = "다사랑암보험_사업방법서.pdf"


@pytest.mark.asyncio
async def test_list_pdfs(backend):
    pdfs = await CodeCatalogue(backend).list_pdfs()

    assert [p.name for p in pdfs] == [PDF]


@pytest.mark.asyncio
async def test_list_codes_of_a_file(backend):
    listing = await CodeCatalogue(backend).list_codes(PDF)

    assert [c.code for c in listing.codes] == ["21686"]
    assert listing.codes[0].kind == "주계약"
    assert listing.diagnostic is None


@pytest.mark.asyncio
async def test_list_codes_empty_file_has_diagnostic(backend):
    listing = await CodeCatalogue(backend).list_codes("없는파일.pdf")

    assert listing.codes == []
    assert listing.diagnostic.startswith("주계약 코드 조회 실패")


@pytest.mark.asyncio
async def test_list_codes_failure_has_diagnostic(backend):
    backend.fail("codes", PDF, NetworkUnavailable("down"))

    listing = await CodeCatalogue(backend).list_codes(PDF)

    assert listing.codes == []
    assert listing.diagnostic == "주계약 코드 조회 실패: 백엔드 서버 연결 실패"


@pytest.mark.asyncio
async def test_inspect_code_gathers_every_part(backend):
    inspection = await CodeCatalogue(backend).inspect_code("21686", 40)

    assert inspection.detail.name.startswith("(무)흥국생명")
    assert inspection.limit.min_won == 1_000_000
    assert inspection.limit.max_won == 100_000_000
    assert "보험기간 10년 / 납입기간 10년납" in inspection.contract_notes.notes
    assert inspection.data_check_errors == []
    assert inspection.min_max.male_min == 1240
    assert inspection.messages == []


@pytest.mark.asyncio
async def test_inspect_code_isolates_failing_parts(backend):
    backend.fail("limit", "21686", HTTPStatusFailure(500, "boom"))
    backend.fail("minmax", "21686", NetworkUnavailable("down"))

    inspection = await CodeCatalogue(backend).inspect_code("21686", 40)

    assert inspection.limit is None
    assert inspection.min_max is None
    assert inspection.detail is not None
    assert inspection.contract_notes is not None
    assert inspection.messages == [
        "가입한도 조회 실패: 서버 내부 오류",
        "최소/최대 보험료 조회 실패: 백엔드 서버 연결 실패",
    ]

    data = inspection.to_dict()
    assert data["limit"] is None
    assert data["detail"]["code"] == "21686"


@pytest.mark.asyncio
async def test_inspect_unknown_code_reports_every_lookup(backend):
    inspection = await CodeCatalogue(backend).inspect_code("99999", 40)

    assert inspection.detail is None
    assert inspection.data_check_errors == ["99999 상품 없음"]
    assert len(inspection.messages) == 4
