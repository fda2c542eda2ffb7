import pytest

from diffscope.modules.core.config import ExtractionConfig
from diffscope.modules.core.diff_parser import changed_line_numbers, parse_diff
from diffscope.modules.core.engines.extract import (
    FileChange,
    extract_code_blocks,
    extract_many,
    prepare_file_context,
    uncovered_changed_lines,
)
from diffscope.modules.core.errors import (
    ERR_BUDGET,
    ERR_CAPABILITY,
    ERR_DEPTH,
    ERR_PARSE,
    ERR_TOKENIZER,
    ERR_UNSUPPORTED,
)
from diffscope.modules.core.parser_adapter import StructuralParser
from diffscope.modules.core import token_utils

JS_DIFF = """@@ -10,7 +10,8 @@
 function add(a, b) {
-  return a + b;
+  const sum = a + b;
+  return sum;
 }
 
 function untouched() {
   return 0;
 }"""

PY_DIFF = """@@ -1,9 +1,9 @@
 class Service:
     def start(self):
-        self.running = True
+        self.running = bool(self)
 
     def stop(self):
-        self.running = False
+        self.running = None
 
 def helper():
     return 2"""

VUE_DIFF = """@@ -0,0 +1,10 @@
+<template>
+  <div>{{ msg }}</div>
+</template>
+<script>
+export default {
+  data() {
+    return { msg: "hi" };
+  },
+};
+</script>"""

ESTIMATE = ExtractionConfig(exact_tokens=False)


class ForbiddenParser(StructuralParser):
    def parse(self, code, extension, timeout_ms):
        raise AssertionError("structural parser must not be called")


def _require(*modules: str) -> None:
    pytest.importorskip("tree_sitter")
    for module in modules:
        pytest.importorskip(module)


def test_unsupported_extension_yields_no_blocks() -> None:
    parsed = parse_diff("@@ -1,1 +1,2 @@\n # Title\n+function f() { return 1 }", "README.md")
    result = extract_code_blocks(parsed, ESTIMATE, parser=ForbiddenParser())
    assert result.blocks == []
    assert result.strategy == "unsupported"


def test_no_added_lines_is_empty() -> None:
    parsed = parse_diff("@@ -1,2 +1,1 @@\n a\n-b", "a.ts")
    result = extract_code_blocks(parsed, ESTIMATE, parser=ForbiddenParser())
    assert (result.blocks, result.strategy) == ([], "empty")


def test_structural_block_in_file_coordinates() -> None:
    _require("tree_sitter_javascript", "tree_sitter_typescript")
    parsed = parse_diff(JS_DIFF, "src/math.js")
    result = extract_code_blocks(parsed, ESTIMATE)
    assert result.strategy == "structural"
    assert len(result.blocks) == 1
    block = result.blocks[0]
    assert (block.kind, block.name) == ("function", "add")
    assert (block.start_line, block.end_line) == (10, 13)
    assert "const sum = a + b;" in block.code
    assert "return a + b;" not in block.code
    assert block.truncation == "none"


def test_every_changed_line_is_covered() -> None:
    _require("tree_sitter_python")
    parsed = parse_diff(PY_DIFF, "svc.py")
    blocks = extract_code_blocks(parsed, ESTIMATE).blocks
    assert [(b.kind, b.name) for b in blocks] == [("method", "start"), ("method", "stop")]
    assert uncovered_changed_lines(parsed, blocks) == []
    for line in changed_line_numbers(parsed):
        assert sum(1 for b in blocks if b.start_line <= line <= b.end_line) == 1


def test_extraction_is_idempotent() -> None:
    _require("tree_sitter_python")
    parsed = parse_diff(PY_DIFF, "svc.py")
    assert extract_code_blocks(parsed, ESTIMATE) == extract_code_blocks(parsed, ESTIMATE)


def test_large_python_function_is_windowed() -> None:
    _require("tree_sitter_python")
    body = [f"     x{i} = {i}" for i in range(2, 301)]
    body[148] = "-    x150 = 150\n+    x150 = -150"
    diff = "@@ -1,300 +1,300 @@\n def big():\n" + "\n".join(body)
    parsed = parse_diff(diff, "big.py")
    blocks = extract_code_blocks(parsed, ESTIMATE).blocks
    assert len(blocks) == 1
    block = blocks[0]
    assert block.truncation == "window"
    assert (block.start_line, block.end_line) == (1, 300)
    assert block.line_count == 19
    assert "x150 = -150" in block.code
    assert block.code.startswith("# [diffscope:omitted lines=141]")


def test_zero_spans_takes_fallback() -> None:
    _require("tree_sitter_javascript", "tree_sitter_typescript")
    parsed = parse_diff("@@ -1,2 +1,3 @@\n const a = 1;\n+const b = 2;\n const c = 3;", "a.js")
    result = extract_code_blocks(parsed, ESTIMATE)
    assert result.strategy == "fallback"
    assert [(b.code, b.start_line, b.kind) for b in result.blocks] == [("const b = 2;", 2, "unknown")]


def test_parse_failure_takes_fallback() -> None:
    parsed = parse_diff(JS_DIFF, "src/math.js")
    result = extract_code_blocks(parsed, ESTIMATE, parser=StructuralParser(parser_factory=lambda g: None))
    assert result.strategy == "fallback"
    assert result.blocks[0].code == "  const sum = a + b;\n  return sum;"
    assert (result.blocks[0].start_line, result.blocks[0].end_line) == (11, 12)
    assert [w["code"] for w in result.warnings] == [ERR_PARSE]


def test_supported_extension_without_grammar_takes_fallback() -> None:
    config = ExtractionConfig(supported_extensions=("rb",), exact_tokens=False)
    parsed = parse_diff("@@ -1,1 +1,2 @@\n def a\n+  1", "lib/a.rb")
    result = extract_code_blocks(parsed, config, parser=ForbiddenParser())
    assert result.strategy == "fallback"
    assert result.warnings[0]["code"] == ERR_UNSUPPORTED
    assert result.blocks[0].code == "  1"


def test_vue_without_sub_parser_takes_fallback() -> None:
    parsed = parse_diff(VUE_DIFF, "App.vue")
    result = extract_code_blocks(parsed, ESTIMATE, parser=StructuralParser(sfc_parser=None))
    assert result.strategy == "fallback"
    assert result.warnings[0]["code"] == ERR_CAPABILITY
    assert (result.blocks[0].start_line, result.blocks[0].end_line) == (1, 10)


def test_vue_script_block_uses_enclosing_line_numbers() -> None:
    _require("tree_sitter_javascript", "tree_sitter_typescript")
    parsed = parse_diff(VUE_DIFF, "App.vue")
    result = extract_code_blocks(parsed, ESTIMATE)
    assert result.strategy == "structural"
    assert [(b.kind, b.name, b.start_line, b.end_line) for b in result.blocks] == [
        ("method", "data", 6, 8)
    ]


def test_depth_ceiling_surfaces_warning() -> None:
    _require("tree_sitter_javascript", "tree_sitter_typescript")
    diff = (
        "@@ -1,5 +1,5 @@\n class Greeter {\n   greet(name) {\n"
        "-    return name;\n+    return \"hi \" + name;\n   }\n }"
    )
    config = ExtractionConfig(max_depth=2, exact_tokens=False)
    result = extract_code_blocks(parse_diff(diff, "greeter.js"), config)
    assert [(b.kind, b.name) for b in result.blocks] == [("class", "Greeter")]
    assert [w["code"] for w in result.warnings] == [ERR_DEPTH]
    assert result.warnings[0]["error"] is False


def test_prepare_file_context_within_budget() -> None:
    change = FileChange(new_path="notes.md", diff="@@ -1,1 +1,2 @@\n a\n+b")
    context = prepare_file_context(change, ExtractionConfig(exact_tokens=False, model_token_ceiling=100000))
    assert context.should_review
    assert context.strategy == "unsupported"
    assert context.numbered_diff == " [1->1] @@ -1,1 +1,2 @@\n [1->1]  a\n+[2] +b"
    assert "```diff\n" + context.numbered_diff + "\n```" in context.prompt
    assert context.available_tokens == 100000 - context.prompt_tokens - 2000
    payload = context.to_dict()
    assert "prompt" not in payload
    assert payload["should_review"] is True


def test_prepare_file_context_budget_exceeded() -> None:
    change = FileChange(new_path="notes.md", diff="@@ -1,1 +1,2 @@\n a\n+b")
    config = ExtractionConfig(exact_tokens=False, model_token_ceiling=100, reserved_output_tokens=50)
    context = prepare_file_context(change, config)
    assert not context.should_review
    assert context.available_tokens == 0
    assert [w["code"] for w in context.warnings] == [ERR_BUDGET]


def test_unavailable_tokenizer_degrades_to_estimate(monkeypatch) -> None:
    def offline_encoder(model: str = "gpt-4"):
        raise ConnectionError("cannot download cl100k_base")

    monkeypatch.setattr(token_utils, "get_encoder", offline_encoder)
    change = FileChange(new_path="notes.md", diff="@@ -1,1 +1,2 @@\n a\n+b")
    context = prepare_file_context(change, ExtractionConfig(model_token_ceiling=100000))
    assert context.prompt_tokens == token_utils.estimate_tokens(context.prompt)
    assert context.should_review
    tokenizer_warnings = [w for w in context.warnings if w["code"] == ERR_TOKENIZER]
    assert len(tokenizer_warnings) == 1
    assert tokenizer_warnings[0]["error"] is False
    assert tokenizer_warnings[0]["details"] == {"file": "notes.md", "model": "gpt-4"}


def test_extract_many_preserves_order() -> None:
    changes = [FileChange(new_path=f"doc{i}.md", diff="@@ -1,1 +1,2 @@\n a\n+b") for i in range(5)]
    contexts = extract_many(changes, ESTIMATE, max_workers=3)
    assert [c.file_path for c in contexts] == [c.new_path for c in changes]
