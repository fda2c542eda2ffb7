def test_public_api_imports() -> None:
    from diffscope.api import (
        Budget,
        ExtractionConfig,
        FileChange,
        StructuralParser,
        build_prompt,
        parse_diff,
        position_issues,
        prepare_file_context,
        render_numbered_diff,
    )

    assert callable(parse_diff)
    assert callable(render_numbered_diff)
    assert callable(prepare_file_context)
    assert callable(build_prompt)
    assert callable(position_issues)
    assert ExtractionConfig().max_block_lines == 150
    assert Budget(10).available(3) == 7
    assert FileChange(new_path="a.ts", diff="").old_path is None
    assert StructuralParser().sfc_available is False


def test_package_reexports() -> None:
    import diffscope

    for name in diffscope.__all__:
        assert hasattr(diffscope, name)
    assert diffscope.modules.core.engines.extract_many is diffscope.extract_many
