from __future__ import annotations

from pathlib import Path

import pytest

from case_board.case_importer import parser
from case_board.case_importer.assembler import FieldAssembler
from case_board.case_importer.classifier import (
    Classification,
    FieldName,
    LineKind,
    ParserConfig,
    classify_line,
    resolve_parser_config,
)

SAMPLE_DOC = (
    Path(__file__).resolve().parents[1]
    / "docs"
    / "_samples"
    / "LoginPage"
    / "测试用例文档.md"
)


@pytest.fixture()
def sample_text() -> str:
    return SAMPLE_DOC.read_text(encoding="utf-8")


def test_sample_document_cases(sample_text: str) -> None:
    result = parser.parse_markdown_test_cases(sample_text)
    codes = [case.code for case in result.test_cases]
    assert codes == ["TC-LG-001", "TC-LG-002", "TC-LG-003A", "TC-017", "TC-099"]
    first = result.test_cases[0]
    assert first.title == "使用正确账号密码登录"
    assert first.category_path == ["登录功能测试", "账号密码登录"]
    assert first.priority == "P0"
    assert first.preconditions == "用户已注册"
    assert first.steps == ["打开登录页面", "输入正确的账号和密码", "点击登录按钮"]
    assert first.expected_results == ["跳转到首页", "顶部显示用户昵称"]
    assert first.test_data is None


def test_sample_document_categories(sample_text: str) -> None:
    result = parser.parse_markdown_test_cases(sample_text)
    assert result.categories == [
        ["登录功能测试", "账号密码登录"],
        ["登录功能测试", "记住密码"],
    ]
    by_code = {case.code: case for case in result.test_cases}
    # top-level category only; the skipped appendix heading keeps the context
    assert by_code["TC-017"].category_path == ["注销功能测试"]
    assert by_code["TC-099"].category_path == ["注销功能测试"]
    assert by_code["TC-099"].priority == "P1"


def test_unknown_bold_label_stops_accumulation(sample_text: str) -> None:
    result = parser.parse_markdown_test_cases(sample_text)
    case = next(case for case in result.test_cases if case.code == "TC-LG-002")
    assert case.expected_results == ['提示"账号或密码错误"']


def test_test_data_and_fence(sample_text: str) -> None:
    result = parser.parse_markdown_test_cases(sample_text)
    case = next(case for case in result.test_cases if case.code == "TC-LG-003A")
    assert case.test_data == "user01 / Passw0rd"
    assert case.expected_results == ["账号和密码自动填充"]


def test_duplicate_category_path_recorded_once() -> None:
    text = "\n".join(
        [
            "## 列表测试",
            "### 列表加载",
            "#### TC-LS-001: 首次加载",
            "### 列表加载",
            "#### TC-LS-002: 下拉刷新",
        ]
    )
    result = parser.parse_markdown_test_cases(text)
    assert result.categories == [["列表测试", "列表加载"]]
    assert [case.category_path for case in result.test_cases] == [
        ["列表测试", "列表加载"],
        ["列表测试", "列表加载"],
    ]


def test_headings_without_cases_yield_nothing() -> None:
    text = "\n".join(
        [
            "# 文档",
            "## 功能说明",
            "### 模块一",
            "这里只有说明文字。",
            "- 列表项",
            "1. 编号项",
        ]
    )
    result = parser.parse_markdown_test_cases(text)
    assert result.test_cases == []
    assert result.is_empty
    assert result.categories == [["功能说明", "模块一"]]


def test_code_pattern_boundaries() -> None:
    text = "\n".join(
        [
            "## 分类",
            "#### TC-SL-001：标题",
            "### TC-017A: Title",
            "### TC-abc: Title",
        ]
    )
    result = parser.parse_markdown_test_cases(text)
    assert [(case.code, case.title) for case in result.test_cases] == [
        ("TC-SL-001", "标题"),
        ("TC-017A", "Title"),
    ]


def test_lowercase_code_heading_becomes_sub_category() -> None:
    result = parser.parse_markdown_test_cases("## 分类\n### TC-abc: Title\n")
    assert result.categories == [["分类", "TC-abc: Title"]]


def test_list_items_routed_to_open_field() -> None:
    text = "\n".join(
        [
            "#### TC-01-001: Sample",
            "- **测试步骤**:",
            "1. Open the app",
            "2. Tap login",
            "- **预期结果**:",
            "- User sees dashboard",
        ]
    )
    result = parser.parse_markdown_test_cases(text)
    assert len(result.test_cases) == 1
    case = result.test_cases[0]
    assert case.code == "TC-01-001"
    assert case.steps == ["Open the app", "Tap login"]
    assert case.expected_results == ["User sees dashboard"]
    assert case.category_path == []


def test_fenced_lines_are_not_fields() -> None:
    text = "\n".join(
        [
            "#### TC-001: Fence",
            "- **测试步骤**:",
            "1. real step",
            "```bash",
            "1. not a step",
            "- also not a step",
            "```",
            "2. second real step",
        ]
    )
    result = parser.parse_markdown_test_cases(text)
    assert result.test_cases[0].steps == ["real step", "second real step"]


def test_fence_hides_headings() -> None:
    text = "```\n#### TC-001: Hidden\n```\n#### TC-002: Visible\n"
    result = parser.parse_markdown_test_cases(text)
    assert [case.code for case in result.test_cases] == ["TC-002"]


def test_preconditions_are_single_line() -> None:
    text = "\n".join(
        [
            "#### TC-001: Pre",
            "- **前置条件**：已登录",
            "- 不会被追加",
            "- **步骤**:",
            "* [X] 点击按钮",
            "1) [] 再次点击",
            "- [ ]",
        ]
    )
    case = parser.parse_markdown_test_cases(text).test_cases[0]
    assert case.preconditions == "已登录"
    assert case.steps == ["点击按钮", "再次点击"]


def test_label_without_inline_value_keeps_field_unset() -> None:
    text = "#### TC-001: Empty\n- **测试数据**:\n- **前置条件**\n"
    case = parser.parse_markdown_test_cases(text).test_cases[0]
    assert case.test_data is None
    assert case.preconditions is None


def test_priority_without_token_keeps_default() -> None:
    text = "#### TC-001: P\n- **优先级**: 高\n"
    assert parser.parse_markdown_test_cases(text).test_cases[0].priority == "P1"


def test_new_category_resets_sub_category() -> None:
    text = "\n".join(
        [
            "## A",
            "### A1",
            "## B",
            "#### TC-001: under B",
        ]
    )
    result = parser.parse_markdown_test_cases(text)
    assert result.test_cases[0].category_path == ["B"]


def test_sub_category_requires_category() -> None:
    result = parser.parse_markdown_test_cases("### 孤立分组\n#### TC-001: x\n")
    assert result.categories == []
    assert result.test_cases[0].category_path == []


def test_field_lines_before_first_case_are_ignored() -> None:
    text = "- **测试步骤**:\n1. orphan\n#### TC-001: first\n1. still orphan\n"
    case = parser.parse_markdown_test_cases(text).test_cases[0]
    assert case.steps == []


def test_crlf_documents() -> None:
    text = "## 分类\r\n### 子类\r\n#### TC-001: 标题\r\n- **测试步骤**:\r\n1. 步骤\r\n"
    result = parser.parse_markdown_test_cases(text)
    case = result.test_cases[0]
    assert case.title == "标题"
    assert case.steps == ["步骤"]
    assert result.categories == [["分类", "子类"]]


def test_to_dict_uses_document_keys(sample_text: str) -> None:
    data = parser.parse_markdown_test_cases(sample_text).to_dict()
    first = data["testCases"][0]  # type: ignore[index]
    assert first["categoryPath"] == ["登录功能测试", "账号密码登录"]
    assert first["expectedResults"] == ["跳转到首页", "顶部显示用户昵称"]
    assert "testData" not in first


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("# 登录页面测试用例文档\n## 其他", "登录页面"),
        ("# 台词管理页面\n", "台词管理页面"),
        ("# 测试用例文档\n", None),
        ("## 没有一级标题\n", None),
        ("前言\n#  设置页 测试用例文 \n", "设置页"),
    ],
)
def test_extract_page_display_name(text: str, expected: str | None) -> None:
    assert parser.extract_page_display_name(text) == expected


def test_classifier_priority_order() -> None:
    classification, fence = classify_line("### TC-001: x", False)
    assert classification.kind is LineKind.TEST_CASE
    assert fence is False
    classification, fence = classify_line("  ```python", False)
    assert classification.kind is LineKind.FENCE
    assert fence is True
    classification, _ = classify_line("## 2. 功能", False)
    assert classification.kind is LineKind.CATEGORY
    assert classification.name == "功能"
    classification, _ = classify_line("## 1. 测试概述", False)
    assert classification.kind is LineKind.IGNORED
    classification, _ = classify_line("- **优先级**: P2 (次要)", False)
    assert classification.label is FieldName.PRIORITY
    assert classification.value == "P2"
    classification, _ = classify_line("- **负责人**: 张三", False)
    assert classification.kind is LineKind.GENERIC_LABEL
    classification, _ = classify_line("plain prose", False)
    assert classification.kind is LineKind.OTHER


def test_inline_value_uses_first_colon() -> None:
    classification, _ = classify_line("- **前置条件**：时间 10:00 之前", False)
    assert classification.value == "时间 10:00 之前"


def test_custom_skip_phrases() -> None:
    config = ParserConfig(category_skip=("Overview",), subcategory_skip=("Scope",))
    text = "\n".join(
        [
            "## Overview",
            "## Login",
            "### Scope",
            "### Happy path",
            "#### TC-001: ok",
        ]
    )
    result = parser.parse_markdown_test_cases(text, config)
    assert result.categories == [["Login", "Happy path"]]
    assert result.test_cases[0].category_path == ["Login", "Happy path"]


def test_resolve_parser_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CASE_IMPORT_CATEGORY_SKIP", "Overview, Appendix,概述")
    monkeypatch.delenv("CASE_IMPORT_SUBCATEGORY_SKIP", raising=False)
    config = resolve_parser_config()
    assert config.category_skip == ("测试概述", "概述", "附录", "Overview", "Appendix")
    assert config.subcategory_skip == ParserConfig().subcategory_skip
    explicit = resolve_parser_config(category_skip=["Only"])
    assert explicit.category_skip == ("Only",)


def test_assembler_ignores_lines_without_open_case() -> None:
    fields = FieldAssembler()
    fields.apply(Classification(LineKind.FIELD_LABEL, label=FieldName.STEPS))
    fields.apply(Classification(LineKind.LIST_ITEM, value="孤立步骤"))
    assert fields.current_field is None
    assert fields.finalize() is None

    fields.open("TC-X-001", "标题", ["模块"])
    fields.apply(Classification(LineKind.FIELD_LABEL, label=FieldName.PRIORITY, value="P0"))
    fields.apply(Classification(LineKind.FIELD_LABEL, label=FieldName.STEPS))
    fields.apply(Classification(LineKind.LIST_ITEM, value="第一步"))
    fields.apply(Classification(LineKind.LIST_ITEM, value=""))
    case = fields.finalize()
    assert case is not None
    assert (case.priority, case.steps, case.expected_results) == ("P0", ["第一步"], [])
