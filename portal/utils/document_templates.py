"""
Portal de Matrículas - Document Templates
Blocos padrão por tipo de documento e funções do editor de modelos
"""
import copy
import uuid

from portal.models.document_template import DocumentType

BLOCK_TYPES = (
    "header", "title", "paragraph", "table", "modules_table", "cronograma_table",
    "quote_table", "course_content", "signature", "footer", "image", "qrcode",
    "spacer", "frame",
)

DEFAULT_FOOTER_TEXT = (
    "E-commerce por {{institution_name}} © {{year}}. {{pix_holder_name}}/CNPJ: "
    "{{institution_cnpj}}. Whatsapp: {{institution_phone}} ou e-mail: {{institution_email}}"
)

_HEADER = {"showLogo": True, "showInstitutionInfo": True, "headerLayout": "logo-left"}


def _block(block_id, block_type, order, **config):
    return {"id": str(block_id), "type": block_type, "order": order, "config": config}


def _info_lines(hours_token):
    return [
        ("<strong>Curso:</strong> {{course_name}}", 15),
        ("<strong>Instituição:</strong> {{organization}}", 5),
        ("<strong>Servidor:</strong> {{student_name}}", 5),
        ("<strong>Carga Horária:</strong> {{%s}} horas" % hours_token, 5),
        ("<strong>Período:</strong> {{start_date}} a {{end_date}}", 5),
    ]


DEFAULT_CONTENT_BLOCKS = {
    DocumentType.DECLARATION.value: [
        _block(1, "header", 1, **_HEADER),
        _block(2, "title", 2, text="DECLARAÇÃO DE MATRÍCULA", fontSize=16, fontWeight="bold", align="center", marginTop=20),
        _block(3, "paragraph", 3, fontSize=11, align="justify", marginTop=20, text=(
            "Declaramos que <strong>{{student_name}}</strong>, CPF: {{student_cpf}}, {{organization}}, "
            "está matriculado(a) no curso de <strong>{{course_name}}</strong>."
        )),
        _block(4, "paragraph", 4, fontSize=11, align="justify", marginTop=10, text=(
            "O curso será iniciado em <strong>{{start_date}}</strong> com término previsto para "
            "<strong>{{end_date}}</strong> e será realizado de forma não presencial (online), com carga "
            "horária de <strong>{{effective_hours}} horas</strong>, sob a supervisão de um tutor qualificado."
        )),
        _block(5, "paragraph", 5, text="{{current_date}}", fontSize=11, align="left", marginTop=25),
        _block(6, "signature", 6, marginTop=30, signatureAlign="left"),
        _block(7, "footer", 7, footerAlign="center", footerText=DEFAULT_FOOTER_TEXT),
    ],
    DocumentType.STUDY_PLAN.value: [
        _block(1, "header", 1, **_HEADER),
        _block(2, "title", 2, text="PLANO DE ESTUDOS", fontSize=16, fontWeight="bold", align="center", marginTop=10),
        *[
            _block(3 + i, "paragraph", 3 + i, text=text, fontSize=10, marginTop=margin)
            for i, (text, margin) in enumerate(_info_lines("effective_hours"))
        ],
        _block(8, "modules_table", 8, marginTop=15),
        _block(9, "title", 9, text="Cronograma", fontSize=12, fontWeight="bold", align="left", marginTop=15),
        _block(10, "cronograma_table", 10, marginTop=8),
        _block(11, "title", 11, text="CONTEÚDO PROGRAMÁTICO DO CURSO", fontSize=12, fontWeight="bold", align="left", marginTop=15),
        _block(12, "course_content", 12, marginTop=8, fontSize=10),
        _block(13, "footer", 13, footerAlign="center"),
    ],
    DocumentType.QUOTE.value: [
        _block(1, "header", 1, **_HEADER),
        _block(2, "title", 2, text="ORÇAMENTO", fontSize=16, fontWeight="bold", align="center", marginTop=15),
        *[
            _block(3 + i, "paragraph", 3 + i, text=text, fontSize=10, marginTop=margin)
            for i, (text, margin) in enumerate(_info_lines("course_hours"))
        ],
        _block(8, "quote_table", 8, marginTop=15),
        _block(9, "title", 9, text="O pagamento pode ser realizado da seguinte forma:", fontSize=11, fontWeight="bold", align="left", marginTop=15),
        _block(10, "paragraph", 10, text="Pagamento a vista (transferência bancária ou PIX) – R$ {{final_amount}}", fontSize=10, marginTop=8),
        _block(11, "paragraph", 11, text="Pagamento no Boleto, podendo ser dividido em até 12 parcelas no cartão de crédito", fontSize=10, marginTop=5),
        _block(12, "title", 12, text="O que está incluso?", fontSize=11, fontWeight="bold", align="left", marginTop=15),
        _block(13, "paragraph", 13, fontSize=10, marginTop=8, text=(
            "1. Carta de aceite no curso para apresentação ao órgão de lotação.\n2. Plano de estudos.\n"
            "3. Vídeo aulas.\n4. Livros em PDF para acompanhamento das disciplinas.\n5. Certificado.\n"
            "6. Toda a documentação facilitadora de aceite no órgão de origem.\n7. Suporte"
        )),
        _block(14, "signature", 14, marginTop=25, signatureAlign="left"),
        _block(15, "footer", 15, footerAlign="center"),
    ],
    DocumentType.CERTIFICATE.value: [
        _block(1, "frame", 0, frameStyle="classic", frameColor="#1E40AF", frameWidth=4),
        _block(2, "header", 1, showLogo=True, showInstitutionInfo=True, headerLayout="logo-above", logoAlign="center", infoAlign="center"),
        _block(3, "title", 2, text="CERTIFICADO", fontSize=24, fontWeight="bold", align="center", marginTop=20),
        _block(4, "paragraph", 3, fontSize=12, align="center", marginTop=25, text=(
            "Certificamos que <strong>{{student_name}}</strong> concluiu o Curso de <strong>{{course_name}}</strong> "
            "promovido pela {{institution_name}}, no período de {{start_date}} a {{completion_date}} com carga "
            "horária total de <strong>{{effective_hours}} horas</strong>."
        )),
        _block(5, "paragraph", 4, text="{{current_date}}", fontSize=11, align="center", marginTop=25),
        _block(6, "signature", 5, marginTop=20, signatureAlign="center"),
        _block(7, "qrcode", 6, marginTop=15, width=50, height=50, qrcodeAlign="center"),
        _block(8, "paragraph", 7, fontSize=8, align="center", marginTop=5,
               text="Código do Certificado: {{certificate_code}} · Verifique autenticidade em: {{verification_url}}"),
        _block(9, "footer", 8, footerAlign="center"),
    ],
}

DEFAULT_TEMPLATE_NAMES = {
    DocumentType.DECLARATION.value: "Declaração de Matrícula",
    DocumentType.STUDY_PLAN.value: "Plano de Estudos",
    DocumentType.QUOTE.value: "Orçamento",
    DocumentType.CERTIFICATE.value: "Certificado",
}


def default_blocks(document_type: str) -> list:
    """Cópia dos blocos padrão do tipo (pode ser alterada livremente)"""
    return copy.deepcopy(DEFAULT_CONTENT_BLOCKS.get(document_type, []))


def normalize_block_order(blocks: list) -> list:
    """
    Renumera os blocos: moldura fica com order=0 e os demais com 1..n,
    mantendo a ordem relativa atual.
    """
    frames = [b for b in blocks if b.get("type") == "frame"]
    others = sorted((b for b in blocks if b.get("type") != "frame"), key=lambda b: b.get("order", 0))

    normalized = [{**b, "order": 0} for b in frames]
    normalized.extend({**b, "order": index} for index, b in enumerate(others, start=1))
    return normalized


def add_block(blocks: list, block_type: str, config: dict = None, position: int = None) -> list:
    """Adiciona um bloco no fim ou na posição informada (1..n)"""
    if block_type not in BLOCK_TYPES:
        raise ValueError(f"Tipo de bloco inválido: {block_type}")

    new_block = {"id": str(uuid.uuid4()), "type": block_type, "order": 0, "config": dict(config or {})}
    ordered = normalize_block_order(blocks)
    if block_type == "frame":
        return normalize_block_order(ordered + [new_block])

    frames = [b for b in ordered if b["type"] == "frame"]
    others = [b for b in ordered if b["type"] != "frame"]
    index = len(others) if position is None else max(0, min(position - 1, len(others)))
    others.insert(index, new_block)
    for order, block in enumerate(others, start=1):
        block["order"] = order
    return frames + others


def remove_block(blocks: list, block_id: str) -> list:
    return normalize_block_order([b for b in blocks if b.get("id") != block_id])


def move_block(blocks: list, block_id: str, direction: str) -> list:
    """Move o bloco uma posição para cima ("up") ou para baixo ("down")"""
    ordered = normalize_block_order(blocks)
    frames = [b for b in ordered if b["type"] == "frame"]
    others = [b for b in ordered if b["type"] != "frame"]

    index = next((i for i, b in enumerate(others) if b.get("id") == block_id), None)
    if index is None:
        return ordered

    target = index - 1 if direction == "up" else index + 1
    if 0 <= target < len(others):
        others[index], others[target] = others[target], others[index]
    for order, block in enumerate(others, start=1):
        block["order"] = order
    return frames + others
