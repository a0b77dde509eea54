import pytest

from core.config import InterviewSettings
from core.types import DocumentType
from services.rag_service import RAGService, cosine_similarity, find_top_k

from conftest import make_document


def test_cosine_identity_and_opposite():
    v = [0.3, -1.2, 4.0]
    assert cosine_similarity(v, v) == pytest.approx(1.0)
    assert cosine_similarity(v, [-x for x in v]) == pytest.approx(-1.0)


def test_cosine_with_zero_vector_is_zero():
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
    assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0


def test_cosine_orthogonal():
    assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == pytest.approx(0.0)


def test_cosine_rejects_dimension_mismatch():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


def _doc_with_similarities(doc_type, sims, owner_id="u1"):
    # 与查询 [1, 0] 的余弦相似度正好为 sims 中的值
    vectors = [[s, (1 - s * s) ** 0.5] for s in sims]
    return make_document(doc_type, [f"chunk {i}" for i in range(len(sims))], owner_id, vectors=vectors)


def test_top_k_returns_highest_first():
    doc = _doc_with_similarities(DocumentType.RESUME, [0.1, 0.9, 0.5])
    matches = find_top_k([1.0, 0.0], [doc], 2)
    assert [m.chunk_index for m in matches] == [1, 2]
    assert [m.similarity for m in matches] == pytest.approx([0.9, 0.5])
    assert matches[0].document_id == doc.id
    assert matches[0].document_type == DocumentType.RESUME
    assert matches[0].text == "chunk 1"
    assert matches[0].metadata == {"chunk_index": 1, "page_number": 1}


def test_top_k_keeps_input_order_for_ties():
    resume = make_document(DocumentType.RESUME, ["r0", "r1"], vectors=[[1.0, 0.0], [2.0, 0.0]])
    job = make_document(DocumentType.JOB_DESCRIPTION, ["j0"], vectors=[[3.0, 0.0]])
    matches = find_top_k([1.0, 0.0], [resume, job], 3)
    assert [(m.document_type, m.chunk_index) for m in matches] == [
        (DocumentType.RESUME, 0),
        (DocumentType.RESUME, 1),
        (DocumentType.JOB_DESCRIPTION, 0),
    ]


def test_top_k_is_sorted_and_bounded():
    resume = _doc_with_similarities(DocumentType.RESUME, [0.2, 0.7])
    job = _doc_with_similarities(DocumentType.JOB_DESCRIPTION, [0.95, 0.4, 0.6])
    matches = find_top_k([1.0, 0.0], [resume, job], 10)
    assert len(matches) == 5
    sims = [m.similarity for m in matches]
    assert sims == sorted(sims, reverse=True)


def test_top_k_without_chunks_is_empty():
    empty = make_document(DocumentType.RESUME, [])
    assert find_top_k([1.0, 0.0], [empty, None], 2) == []
    assert find_top_k([1.0, 0.0], [], 2) == []


def test_top_k_skips_mismatched_dimensions():
    doc = make_document(DocumentType.RESUME, ["a", "b"], vectors=[[1.0, 0.0, 0.0], [1.0, 0.0]])
    matches = find_top_k([1.0, 0.0], [doc], 2)
    assert [m.chunk_index for m in matches] == [1]


def test_service_uses_configured_top_k():
    doc = _doc_with_similarities(DocumentType.RESUME, [0.1, 0.2, 0.3, 0.4])
    service = RAGService(InterviewSettings(RAG_TOPK=3))
    assert len(service.retrieve([1.0, 0.0], [doc])) == 3
    assert len(service.retrieve([1.0, 0.0], [doc], k=1)) == 1
