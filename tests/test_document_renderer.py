"""Renderização dos blocos em PDF e editor de modelos."""

import pytest

from portal.utils.document_renderer import (
    MOCK_MODULES,
    DocumentRenderer,
    render_document,
    resolve_modules,
    strip_html,
    substitute,
    to_markup,
)
from portal.utils.document_templates import (
    BLOCK_TYPES,
    DEFAULT_CONTENT_BLOCKS,
    add_block,
    default_blocks,
    move_block,
    normalize_block_order,
    remove_block,
)

DATA = {
    "student_name": "Maria Silva Santos",
    "student_cpf": "529.982.247-25",
    "course_name": "Gestão Pública Municipal",
    "course_hours": 120,
    "organization": "Ministério da Educação",
    "start_date": "14/01/2025",
    "end_date": "13/02/2025",
    "course_content": "Fundamentos da administração pública.",
    "modules": [{"name": "Introdução", "hours": 60}, {"name": "Finanças", "hours": 60}],
    "final_amount": "237,00",
    "certificate_code": "CERT-ABC-123456",
    "verification_url": "https://portal.example.com/verify-certificate/CERT-ABC-123456",
}
SETTINGS = {"institution_name": "Instituto Capacitar", "institution_city": "Brasília"}


def block(block_id, block_type, order, **config):
    return {"id": block_id, "type": block_type, "order": order, "config": config}


def render(blocks, data=None):
    renderer = DocumentRenderer(blocks, data or DATA, SETTINGS)
    pdf = renderer.render()
    return renderer, pdf


def test_substitute_unknown_token_is_empty():
    assert substitute("Olá {{student_name}}{{inexistente}}!", DATA) == "Olá Maria Silva Santos!"


def test_markup_escapes_values_and_keeps_inline_tags():
    values = {"student_name": "<script>alert(1)</script>"}
    markup = to_markup("<strong>Aluno:</strong> {{student_name}} & cia<br>fim", values)

    assert markup.startswith("<b>Aluno:</b> ")
    assert "&lt;script&gt;" in markup
    assert "<script>" not in markup
    assert "&amp; cia<br/>fim" in markup


def test_markup_escapes_unsupported_tags():
    assert to_markup('<a href="x">link</a>', {}) == '&lt;a href="x"&gt;link&lt;/a&gt;'


def test_strip_html():
    text = strip_html("<p>Primeiro</p><ul><li>Item &amp; outro</li></ul>")
    assert text == "Primeiro\n\n• Item & outro"


def test_modules_invalid_json_falls_back_to_examples():
    assert resolve_modules("{nao é json") == MOCK_MODULES


def test_modules_with_unreadable_hours_fall_back_to_examples():
    assert resolve_modules('[{"name": "A", "hours": "40h"}]', effective_hours=60) == MOCK_MODULES
    assert resolve_modules([{"name": "A", "hours": 10}, {"name": "B", "hours": [1]}]) == MOCK_MODULES


def test_modules_without_hours_split_evenly():
    modules = resolve_modules('["A", "B", "C"]', effective_hours=100)
    assert [m["hours"] for m in modules] == [33, 33, 34]


def test_modules_scaled_by_organ_multiplier():
    raw = [{"name": "A", "hours": 60}, {"name": "B", "hours": 60}]
    modules = resolve_modules(raw, effective_hours=60, base_hours=120)
    assert [m["hours"] for m in modules] == [30, 30]


def test_pdf_output():
    _, pdf = render(default_blocks("declaration"))
    assert pdf.startswith(b"%PDF")


@pytest.mark.parametrize("document_type", sorted(DEFAULT_CONTENT_BLOCKS))
def test_default_blocks_render(document_type):
    pdf = render_document(default_blocks(document_type), DATA, SETTINGS)
    assert pdf.startswith(b"%PDF")


def test_blocks_are_laid_out_in_order():
    blocks = [
        block("c", "paragraph", 3, text="Terceiro"),
        block("a", "title", 1, text="DECLARAÇÃO", fontSize=16, align="center"),
        block("b", "paragraph", 2, text="Declaramos que {{student_name}} está matriculada."),
    ]
    renderer, _ = render(blocks)

    flow = [entry for entry in renderer.trace if not entry.get("pinned")]
    assert [entry["block_id"] for entry in flow] == ["a", "b", "c"]
    tops = [entry["top"] for entry in flow]
    assert tops == sorted(tops)
    assert all(entry["bottom"] >= entry["top"] for entry in flow)


def test_margin_top_shifts_block():
    blocks = [block("a", "paragraph", 1, text="Texto", marginTop=15)]
    renderer, _ = render(blocks)
    assert renderer.trace[0]["top"] == 20 + 15


def test_spacer_default_height():
    blocks = [block("a", "spacer", 1), block("b", "spacer", 2, height=7)]
    renderer, _ = render(blocks)
    first, second = renderer.trace
    assert first["bottom"] - first["top"] == 20
    assert second["bottom"] - second["top"] == 7


def test_footer_is_pinned_and_does_not_move_cursor():
    blocks = [
        block("a", "paragraph", 1, text="Antes"),
        block("f", "footer", 2, footerText="Rodapé {{institution_name}}"),
        block("b", "paragraph", 3, text="Depois"),
    ]
    renderer, _ = render(blocks)

    entries = {entry["block_id"]: entry for entry in renderer.trace}
    assert entries["f"]["pinned"] is True
    assert entries["f"]["top"] == round(renderer.height - 12, 2)
    assert entries["b"]["top"] == entries["a"]["bottom"]


def test_frame_is_drawn_on_every_page():
    long_content = "\n\n".join(["Parágrafo de conteúdo programático extenso. " * 12] * 20)
    blocks = [
        block("frame", "frame", 0, frameStyle="double"),
        block("content", "course_content", 1),
    ]
    renderer, pdf = render(blocks, {**DATA, "course_content": long_content})

    assert pdf.startswith(b"%PDF")
    assert renderer.page > 1
    frame_pages = [entry["page"] for entry in renderer.trace if entry["block_id"] == "frame"]
    assert frame_pages == list(range(1, renderer.page + 1))


def test_unloadable_image_is_skipped():
    blocks = [
        block("img", "image", 1, imageSource="custom-url", imageUrl="/caminho/inexistente.png", width=40, height=20),
        block("p", "paragraph", 2, text="Segue"),
    ]
    renderer, pdf = render(blocks)
    assert pdf.startswith(b"%PDF")
    assert [entry["block_id"] for entry in renderer.trace] == ["img", "p"]


def test_unknown_block_type_is_ignored():
    renderer, _ = render([block("x", "desconhecido", 1), block("p", "paragraph", 2, text="ok")])
    assert [entry["block_id"] for entry in renderer.trace] == ["p"]


def test_normalize_puts_frame_first():
    blocks = [
        block("a", "paragraph", 5),
        block("f", "frame", 9),
        block("b", "title", 2),
    ]
    normalized = normalize_block_order(blocks)
    assert [(b["id"], b["order"]) for b in normalized] == [("f", 0), ("b", 1), ("a", 2)]


def test_add_block_at_position():
    blocks = [block("a", "title", 1), block("b", "paragraph", 2)]
    result = add_block(blocks, "spacer", {"height": 5}, position=2)

    assert [b["type"] for b in result] == ["title", "spacer", "paragraph"]
    assert [b["order"] for b in result] == [1, 2, 3]
    assert result[1]["config"] == {"height": 5}


def test_add_block_rejects_unknown_type():
    with pytest.raises(ValueError):
        add_block([], "video")
    assert "frame" in BLOCK_TYPES


def test_move_and_remove_block():
    blocks = [block("a", "title", 1), block("b", "paragraph", 2), block("c", "spacer", 3)]

    moved = move_block(blocks, "c", "up")
    assert [b["id"] for b in moved] == ["a", "c", "b"]
    assert move_block(moved, "a", "up") == moved

    remaining = remove_block(moved, "c")
    assert [(b["id"], b["order"]) for b in remaining] == [("a", 1), ("b", 2)]


def test_default_blocks_are_copies():
    blocks = default_blocks("certificate")
    blocks[0]["config"]["changed"] = True
    assert "changed" not in default_blocks("certificate")[0]["config"]
    assert blocks[0]["type"] == "frame" and blocks[0]["order"] == 0
