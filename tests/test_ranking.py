from docchat.rag.ranking import rank_chunks, score_chunk


def test_score_counts_each_keyword_once() -> None:
    assert score_chunk("apple apple apple", ["apple"]) == 1
    assert score_chunk("Apple and Banana", ["apple", "banana", "cherry"]) == 2


def test_equal_scores_keep_document_order() -> None:
    chunks = ["apple banana", "apple", "banana apple"]
    assert rank_chunks(chunks, "apple") == chunks


def test_higher_scores_come_first() -> None:
    chunks = ["nothing here", "river only", "river delta sediment", "delta river"]
    ranked = rank_chunks(chunks, "river delta sediment", max_chunks=3)
    assert ranked == ["river delta sediment", "delta river", "river only"]


def test_no_query_keywords_returns_leading_chunks() -> None:
    chunks = ["one", "two", "three", "four"]
    assert rank_chunks(chunks, "a an the") == ["one", "two", "three"]


def test_no_chunks_returns_empty() -> None:
    assert rank_chunks([], "anything relevant") == []


def test_result_size_is_bounded() -> None:
    chunks = [f"chunk {i} about rivers" for i in range(10)]
    assert len(rank_chunks(chunks, "rivers", max_chunks=2)) == 2
    assert len(rank_chunks(chunks[:1], "rivers", max_chunks=5)) == 1
