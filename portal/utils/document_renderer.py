"""
Portal de Matrículas - Document Renderer
Gera PDFs (declaração, plano de estudos, orçamento, certificado) a partir de
blocos de conteúdo configuráveis.

Todas as medidas dos blocos estão em milímetros. O cursor vertical é medido
a partir do topo da página e convertido para pontos na hora de desenhar.
"""
import html
import json
import logging
import re
from datetime import datetime, timedelta
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4, letter, landscape, portrait
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

logger = logging.getLogger(__name__)


class DocumentDesign:
    FONT_REGULAR = "Helvetica"
    FONT_BOLD = "Helvetica-Bold"

    TEXT = "#000000"
    GRAY = "#646464"
    TABLE_BORDER = "#000000"
    TABLE_HEADER_BG = "#E5E7EB"
    TABLE_ALTERNATE = "#FAFAFA"

    # Medidas em mm
    LOGO_WIDTH = 25
    LOGO_HEIGHT = 18
    SIGNATURE_LINE = 70
    SIGNATURE_IMG_WIDTH = 40
    SIGNATURE_IMG_HEIGHT = 15
    ROW_HEIGHT = 8
    HEADER_ROW_HEIGHT = 10
    FOOTER_OFFSET = 12
    FOOTER_MARGIN = 15
    FOOTER_LINE = 3.5
    SPACER = 20
    QR_SIZE = 50
    PAGE_BREAK_RESERVE = 40

    CRONOGRAMA_WIDTHS = [40, 28, 28, 55, 35]
    CRONOGRAMA_HEADERS = ["Data", "Horário", "CH Semanal", "Atividade/Conteúdo", "Local"]
    CRONOGRAMA_SCHEDULE = "8:00 às 12:00"
    WEEKLY_HOURS = 30


DEFAULT_MARGINS = {"top": 20, "right": 20, "bottom": 20, "left": 20}

# estilo -> (cor, espessura em pontos)
FRAME_PRESETS = {
    "none": ("#000000", 0),
    "simple": ("#1E40AF", 2),
    "double": ("#1E40AF", 3),
    "classic": ("#1E40AF", 4),
    "elegant": ("#0F172A", 4),
    "modern": ("#3B82F6", 2),
}

# Usado quando o JSON de módulos do curso é inválido
MOCK_MODULES = [
    {"name": "Introdução à Gestão Pública", "hours": 40},
    {"name": "Finanças Públicas", "hours": 60},
    {"name": "Licitações e Contratos", "hours": 50},
    {"name": "Gestão de Pessoas", "hours": 45},
]

PAGE_FORMATS = {"a4": A4, "letter": letter}
ALIGNMENTS = {"left": TA_LEFT, "center": TA_CENTER, "right": TA_RIGHT, "justify": TA_JUSTIFY}

TOKEN_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")
INLINE_TAG_RE = re.compile(r"(</?(?:strong|b|em|i|u)>|<br\s*/?>)", re.IGNORECASE)
INLINE_TAGS = {"<strong>": "<b>", "</strong>": "</b>", "<em>": "<i>", "</em>": "</i>"}
HTML_TAG_RE = re.compile(r"<[^>]+>")


# ==========================================
# TEXTO E VARIÁVEIS
# ==========================================

def _value(values: dict, key: str) -> str:
    value = values.get(key)
    return "" if value is None else str(value)


def substitute(text: str, values: dict) -> str:
    """Troca {{variavel}} pelo valor (texto puro); variáveis desconhecidas viram vazio"""
    return TOKEN_RE.sub(lambda m: _value(values, m.group(1)), text or "")


def to_markup(text: str, values: dict) -> str:
    """
    Converte o texto do bloco em marcação do Paragraph.

    Só <strong>/<b>/<em>/<i>/<u>/<br> do modelo viram marcação; o restante
    (incluindo os valores das variáveis) é escapado.
    """
    out = []
    for part in INLINE_TAG_RE.split(text or ""):
        if INLINE_TAG_RE.fullmatch(part):
            tag = part.lower()
            out.append("<br/>" if tag.startswith("<br") else INLINE_TAGS.get(tag, tag))
            continue
        escaped = TOKEN_RE.sub(lambda m: escape(_value(values, m.group(1))), escape(part))
        out.append(escaped.replace("\n", "<br/>"))
    return "".join(out)


def strip_html(content: str) -> str:
    """Texto puro a partir do HTML da descrição do curso"""
    text = content or ""
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</(p|div|h[1-6])>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<li[^>]*>", "• ", text, flags=re.IGNORECASE)
    text = re.sub(r"</li>", "\n", text, flags=re.IGNORECASE)
    text = html.unescape(HTML_TAG_RE.sub("", text))
    text = re.sub(r"[ \t]+", " ", text)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def resolve_modules(raw, effective_hours: int = 0, base_hours: int = 0) -> list:
    """
    Lista de módulos [{"name", "hours"}] do curso.

    JSON inválido ou horas ilegíveis usam a lista de exemplo. Sem horas definidas, a carga
    efetiva é dividida igualmente (o último módulo fica com o resto); com
    multiplicador do órgão as horas são recalculadas proporcionalmente.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else []
        except ValueError:
            logger.warning("JSON de módulos inválido, usando módulos de exemplo")
            return [dict(m) for m in MOCK_MODULES]
    if not isinstance(raw, list):
        return [dict(m) for m in MOCK_MODULES] if raw else []

    modules = []
    for item in raw:
        if isinstance(item, str):
            modules.append({"name": item, "hours": 0})
        elif isinstance(item, dict):
            hours = item.get("hours") or item.get("carga_horaria") or 0
            try:
                hours = int(hours)
            except (TypeError, ValueError):
                logger.warning(f"Carga horária inválida no módulo {item.get('name')}: {hours!r}")
                return [dict(m) for m in MOCK_MODULES]
            modules.append({"name": str(item.get("name", "")), "hours": hours})

    if not modules:
        return modules

    total = effective_hours or base_hours
    declared = sum(m["hours"] for m in modules)
    if declared == 0 and total:
        share = total // len(modules)
        for m in modules:
            m["hours"] = share
        modules[-1]["hours"] = total - share * (len(modules) - 1)
    elif effective_hours and base_hours and effective_hours != base_hours:
        ratio = effective_hours / base_hours
        for m in modules[:-1]:
            m["hours"] = round(m["hours"] * ratio)
        modules[-1]["hours"] = effective_hours - sum(m["hours"] for m in modules[:-1])
    return modules


def _parse_br_date(value):
    try:
        return datetime.strptime(value, "%d/%m/%Y")
    except (TypeError, ValueError):
        return None


# ==========================================
# RENDERIZADOR
# ==========================================

class DocumentRenderer:
    """
    Renderiza uma lista de blocos em uma página (ou mais) de PDF.

    Após render() o atributo `trace` contém a posição de cada bloco:
    {"block_id", "type", "page", "top", "bottom"} em mm a partir do topo.
    """

    def __init__(self, blocks, data: dict, settings: dict, margins: dict = None,
                 orientation: str = "portrait", page_format: str = "a4"):
        self.blocks = sorted(blocks or [], key=lambda b: b.get("order", 0))
        self.data = data or {}
        self.settings = settings or {}
        self.margins = {**DEFAULT_MARGINS, **(margins or {})}

        size = PAGE_FORMATS.get(page_format, A4)
        self.page_size = landscape(size) if orientation == "landscape" else portrait(size)
        self.width = self.page_size[0] / mm
        self.height = self.page_size[1] / mm

        self.values = {**self.settings, "year": datetime.now().year}
        self.values.update({k: v for k, v in self.data.items() if v not in (None, "")})

        self.trace = []
        self.page = 1
        self.c = None
        self._images = {}

        self.handlers = {
            "header": self.draw_header,
            "title": self.draw_text,
            "paragraph": self.draw_text,
            "table": self.draw_table,
            "modules_table": self.draw_modules_table,
            "cronograma_table": self.draw_cronograma_table,
            "quote_table": self.draw_quote_table,
            "course_content": self.draw_course_content,
            "signature": self.draw_signature,
            "image": self.draw_image,
            "qrcode": self.draw_qrcode,
            "spacer": self.draw_spacer,
        }

    # ---------- coordenadas ----------

    @property
    def left(self):
        return self.margins["left"]

    @property
    def right(self):
        return self.margins["right"]

    @property
    def content_width(self):
        return self.width - self.left - self.right

    def _y(self, top_mm: float) -> float:
        return (self.height - top_mm) * mm

    def _aligned_x(self, align: str, element_width: float) -> float:
        if align == "center":
            return (self.width - element_width) / 2
        if align == "right":
            return self.width - self.right - element_width
        return self.left

    def _text(self, x, baseline, text, font=DocumentDesign.FONT_REGULAR, size=9, align="left"):
        self.c.setFont(font, size)
        if align == "center":
            self.c.drawCentredString(x * mm, self._y(baseline), text)
        elif align == "right":
            self.c.drawRightString(x * mm, self._y(baseline), text)
        else:
            self.c.drawString(x * mm, self._y(baseline), text)

    def _rect(self, x, top, w, h, stroke=1, fill=0):
        self.c.rect(x * mm, self._y(top + h), w * mm, h * mm, stroke=stroke, fill=fill)

    def _fit(self, text, width, font, size):
        """Trunca o texto para caber na largura (mm)"""
        text = text or ""
        limit = (width - 3) * mm
        if self.c.stringWidth(text, font, size) <= limit:
            return text
        while text and self.c.stringWidth(text + "...", font, size) > limit:
            text = text[:-1]
        return text + "..."

    # ---------- imagens ----------

    def _load_image(self, source):
        if not source:
            return None
        if source in self._images:
            return self._images[source]
        try:
            image = ImageReader(source)
            image.getSize()
        except Exception as e:
            logger.warning(f"Não foi possível carregar a imagem {source[:80]}: {e}")
            image = None
        self._images[source] = image
        return image

    def _draw_image(self, image, x, top, w, h) -> bool:
        try:
            self.c.drawImage(image, x * mm, self._y(top + h), width=w * mm, height=h * mm,
                             mask="auto", preserveAspectRatio=True)
            return True
        except Exception as e:
            logger.warning(f"Não foi possível desenhar a imagem: {e}")
            return False

    # ---------- fluxo principal ----------

    def render(self) -> bytes:
        buffer = BytesIO()
        self.c = canvas.Canvas(buffer, pagesize=self.page_size)

        try:
            frames = [b for b in self.blocks if b.get("type") == "frame"]
            footers = [b for b in self.blocks if b.get("type") == "footer"]

            self._start_page(frames)
            y = self.margins["top"]

            for block in self.blocks:
                block_type = block.get("type")
                config = block.get("config") or {}

                if block_type == "frame":
                    continue
                if block_type == "footer":
                    top, bottom = self._footer_extent(block)
                    self._record(block, top, bottom, pinned=True)
                    continue

                if y > self.height - self.margins["bottom"] - DocumentDesign.PAGE_BREAK_RESERVE:
                    y = self._new_page(frames, footers)

                handler = self.handlers.get(block_type)
                if handler is None:
                    logger.warning(f"Tipo de bloco desconhecido ignorado: {block_type}")
                    continue

                if block_type != "spacer":
                    y += config.get("marginTop") or 0
                top = y
                y = handler(block, config, y)
                self._record(block, top, y)
                y += config.get("marginBottom") or 0

            self._finish_page(footers)
            self.c.save()
            return buffer.getvalue()
        except Exception as e:
            logger.error(f"Erro ao gerar PDF: {e}")
            raise
        finally:
            buffer.close()

    def _record(self, block, top, bottom, pinned=False):
        entry = {
            "block_id": block.get("id"),
            "type": block.get("type"),
            "page": self.page,
            "top": round(top, 2),
            "bottom": round(bottom, 2),
        }
        if pinned:
            entry["pinned"] = True
        self.trace.append(entry)

    def _start_page(self, frames):
        for frame in frames:
            self.draw_frame(frame.get("config") or {})
            self._record(frame, 0, self.height, pinned=True)

    def _finish_page(self, footers):
        for footer in footers:
            self.draw_footer(footer.get("config") or {})

    def _new_page(self, frames, footers) -> float:
        self._finish_page(footers)
        self.c.showPage()
        self.page += 1
        self._start_page(frames)
        return self.margins["top"]

    # ---------- blocos ----------

    def draw_frame(self, config):
        style = config.get("frameStyle") or "classic"
        preset_color, preset_width = FRAME_PRESETS.get(style, FRAME_PRESETS["classic"])
        if style == "none":
            return
        color = HexColor(config.get("frameColor") or preset_color)
        line = config.get("frameWidth") or preset_width
        w, h = self.width, self.height
        c = self.c

        c.saveState()
        c.setStrokeColor(color)
        c.setFillColor(color)
        c.setLineWidth(line)

        if style == "simple":
            self._rect(8, 8, w - 16, h - 16)
        elif style == "double":
            self._rect(6, 6, w - 12, h - 12)
            c.setLineWidth(line / 2)
            self._rect(12, 12, w - 24, h - 24)
        elif style == "classic":
            self._rect(8, 8, w - 16, h - 16)
            c.setLineWidth(line / 2)
            r, g, b = color.red, color.green, color.blue
            c.setStrokeColorRGB(min(r + 0.31, 1), min(g + 0.31, 1), min(b + 0.31, 1))
            self._rect(12, 12, w - 24, h - 24)
            size, thickness = 12, 3
            for x, top, rw, rh in (
                (18, 18, size, thickness), (18, 18, thickness, size),
                (w - 30, 18, size, thickness), (w - 21, 18, thickness, size),
                (18, h - 21, size, thickness), (18, h - 30, thickness, size),
                (w - 30, h - 21, size, thickness), (w - 21, h - 30, thickness, size),
            ):
                self._rect(x, top, rw, rh, stroke=0, fill=1)
        elif style == "elegant":
            c.setLineWidth(1)
            self._rect(5, 5, w - 10, h - 10)
            c.setLineWidth(line)
            self._rect(10, 10, w - 20, h - 20)
            c.setLineWidth(1)
            self._rect(15, 15, w - 30, h - 30)
            c.setLineWidth(2)
            accent = 20
            for x, top, dx, dy in ((20, 20, 1, 1), (w - 20, 20, -1, 1), (20, h - 20, 1, -1), (w - 20, h - 20, -1, -1)):
                c.line(x * mm, self._y(top), (x + dx * accent) * mm, self._y(top))
                c.line(x * mm, self._y(top), x * mm, self._y(top + dy * accent))
        elif style == "modern":
            self._rect(10, 10, w - 20, h - 20)
            self._rect(10, 10, w - 20, 3, stroke=0, fill=1)
            self._rect(10, h - 13, w - 20, 3, stroke=0, fill=1)

        c.restoreState()

    def draw_header(self, block, config, y):
        s = self.settings
        show_info = config.get("showInstitutionInfo", True) is not False
        layout = config.get("headerLayout") or "logo-left"
        logo = self._load_image(s.get("logo_url")) if config.get("showLogo", True) is not False else None
        lw, lh = DocumentDesign.LOGO_WIDTH, DocumentDesign.LOGO_HEIGHT

        info = [
            (s.get("institution_name") or "", DocumentDesign.FONT_BOLD, 9, 6),
            ("Cursos Online e Presenciais", DocumentDesign.FONT_REGULAR, 8, 11),
            (s.get("institution_address") or "", DocumentDesign.FONT_REGULAR, 8, 15),
            (f"CEP: {s.get('institution_cep') or ''}", DocumentDesign.FONT_REGULAR, 8, 19),
        ]

        if layout == "logo-above":
            if logo and self._draw_image(logo, self._aligned_x(config.get("logoAlign") or "left", lw), y, lw, lh):
                y += lh + 5
            if show_info:
                align = config.get("infoAlign") or "left"
                x = {"center": self.width / 2, "right": self.width - self.right}.get(align, self.left)
                for text, font, size, offset in info:
                    self._text(x, y + offset, text, font, size, align)
                y += 25
            return y

        if layout == "logo-center":
            drawn = bool(logo) and self._draw_image(logo, (self.width - lw) / 2, y, lw, lh)
            if show_info:
                text_y = y + lh + 5 if drawn else y
                for text, font, size, offset in info[:2]:
                    self._text(self.width / 2, text_y + offset, text, font, size, "center")
                return text_y + 20
            return y + (lh + 5 if drawn else 0)

        if layout == "logo-right":
            drawn = bool(logo) and self._draw_image(logo, self.width - self.right - lw, y, lw, lh)
            text_x = self.left
        else:
            drawn = bool(logo) and self._draw_image(logo, self.left, y, lw, lh)
            text_x = self.left + lw + 5 if drawn else self.left

        if show_info:
            for text, font, size, offset in info:
                self._text(text_x, y + offset, text, font, size)
            return y + 30
        return y + (lh + 5 if drawn else 0)

    def _paragraph(self, markup, config, default_size=11, default_align="left", bold=False):
        size = config.get("fontSize") or default_size
        style = ParagraphStyle(
            "block",
            fontName=DocumentDesign.FONT_BOLD if bold else DocumentDesign.FONT_REGULAR,
            fontSize=size,
            leading=size * 1.25,
            alignment=ALIGNMENTS.get(config.get("align") or default_align, TA_LEFT),
            textColor=HexColor(config.get("textColor") or DocumentDesign.TEXT),
        )
        try:
            return Paragraph(markup, style)
        except ValueError as e:
            logger.warning(f"Marcação inválida no bloco, usando texto puro: {e}")
            return Paragraph(escape(HTML_TAG_RE.sub("", markup)), style)

    def _draw_paragraph(self, paragraph, y) -> float:
        _, h = paragraph.wrap(self.content_width * mm, self.height * mm)
        paragraph.drawOn(self.c, self.left * mm, self._y(y) - h)
        return y + h / mm

    def draw_text(self, block, config, y):
        markup = to_markup(config.get("text") or "", self.values)
        bold = config.get("fontWeight") == "bold"
        return self._draw_paragraph(self._paragraph(markup, config, bold=bold), y)

    def draw_course_content(self, block, config, y):
        text = strip_html(self.data.get("course_content") or "")
        if not text:
            return y
        limit = self.height - self.margins["bottom"] - DocumentDesign.FOOTER_OFFSET
        for chunk in text.split("\n\n"):
            markup = escape(chunk).replace("\n", "<br/>")
            paragraph = self._paragraph(markup, config, default_size=10, default_align="justify")
            _, h = paragraph.wrap(self.content_width * mm, self.height * mm)
            if y + h / mm > limit:
                y = self._new_page(
                    [b for b in self.blocks if b.get("type") == "frame"],
                    [b for b in self.blocks if b.get("type") == "footer"],
                )
            y = self._draw_paragraph(paragraph, y) + 2
        return y + 3

    def _table_row(self, x, y, widths, cells, height=None, bold=False, fill=None, align="left"):
        height = height or DocumentDesign.ROW_HEIGHT
        font = DocumentDesign.FONT_BOLD if bold else DocumentDesign.FONT_REGULAR
        size = 8 if len(widths) > 3 else 9
        for width, cell in zip(widths, cells):
            if fill:
                self.c.setFillColor(HexColor(fill))
                self._rect(x, y, width, height, stroke=1, fill=1)
            else:
                self._rect(x, y, width, height)
            self.c.setFillColor(HexColor(DocumentDesign.TEXT))
            text = self._fit(str(cell), width, font, size)
            baseline = y + height / 2 + 1
            if align == "center":
                self._text(x + width / 2, baseline, text, font, size, "center")
            else:
                self._text(x + 2, baseline, text, font, size)
            x += width
        return y + height

    def _table_style(self, config, header_default=DocumentDesign.TABLE_HEADER_BG):
        self.c.setStrokeColor(HexColor(config.get("tableBorderColor") or DocumentDesign.TABLE_BORDER))
        self.c.setLineWidth(config.get("tableBorderWidth") or 0.5)
        return (
            config.get("tableHeaderBgColor") or header_default,
            config.get("tableRowAlternateColor") or DocumentDesign.TABLE_ALTERNATE,
        )

    def _modules(self):
        return self.data.get("modules") or []

    def draw_modules_table(self, block, config, y):
        header_bg, alternate = self._table_style(config)
        widths = [self.content_width - 50, 50]

        y = self._table_row(self.left, y, widths, ["Módulos", "Carga Horária (horas)"], bold=True, fill=header_bg)
        total = 0
        for index, module in enumerate(self._modules()):
            fill = alternate if index % 2 == 1 else None
            y = self._table_row(self.left, y, widths, [module["name"], module["hours"]], fill=fill)
            total += module["hours"]
        total_hours = self.data.get("effective_hours") or total
        y = self._table_row(self.left, y, widths, ["TOTAL", total_hours], bold=True, fill=header_bg)
        return y + 5

    def draw_cronograma_table(self, block, config, y):
        header_bg, _ = self._table_style(config, header_default="#FFFFFF")
        widths = DocumentDesign.CRONOGRAMA_WIDTHS
        x = (self.width - sum(widths)) / 2

        y = self._table_row(x, y, widths, DocumentDesign.CRONOGRAMA_HEADERS,
                            height=DocumentDesign.HEADER_ROW_HEIGHT, bold=True, fill=header_bg, align="center")

        weekly = self.data.get("weekly_hours") or DocumentDesign.WEEKLY_HOURS
        institution = (self.settings.get("institution_name") or "").split()
        local = f"Plataforma {institution[0]}" if institution else "Plataforma"
        start_text = self.data.get("start_date") or ""
        end_text = self.data.get("end_date") or ""

        modules = self._modules()
        if not modules:
            row = [f"{start_text} a {end_text}", DocumentDesign.CRONOGRAMA_SCHEDULE, weekly,
                   self.data.get("course_name") or "Curso", local]
            return self._table_row(x, y, widths, row, align="center") + 5

        start = _parse_br_date(start_text)
        end = _parse_br_date(end_text)
        total_days = (end - start).days if start and end else 90
        per_module = max(total_days // len(modules), 1)

        for index, module in enumerate(modules):
            if start:
                first = start + timedelta(days=index * per_module)
                last = start + timedelta(days=(index + 1) * per_module - 1)
                period = f"{first:%d/%m/%Y} a {last:%d/%m/%Y}"
            else:
                period = f"{start_text} a {end_text}"
            row = [period, DocumentDesign.CRONOGRAMA_SCHEDULE, weekly, module["name"].upper(), local]
            y = self._table_row(x, y, widths, row, align="center")
        return y + 5

    def draw_quote_table(self, block, config, y):
        header_bg, _ = self._table_style(config)
        widths = [self.content_width - 40, 40]
        days = self.data.get("duration_days") or 90

        rows = [
            (f"1 curso de licença capacitação – {days} dias", self.data.get("enrollment_fee") or "0,00"),
            ("Taxa de antecipação de documentos (paga)", self.data.get("pre_enrollment_credit") or "0,00"),
            ("Valor restante a pagar", self.data.get("final_amount") or "0,00"),
        ]
        y = self._table_row(self.left, y, widths, ["Descrição", "Valor (Reais)"], bold=True, fill=header_bg)
        for description, value in rows:
            y = self._table_row(self.left, y, widths, [description, value])
        return y + 5

    def draw_table(self, block, config, y):
        """Tabela com colunas definidas no bloco"""
        source = config.get("dataSource") or "custom"
        if source == "cronograma":
            return self.draw_cronograma_table(block, config, y)

        columns = config.get("columns") or []
        if not columns:
            return y
        header_bg, alternate = self._table_style(config)

        declared = [col.get("width") for col in columns]
        if all(declared) and sum(declared) <= self.content_width:
            widths = declared
        else:
            widths = [self.content_width / len(columns)] * len(columns)

        rows = self._modules() if source == "modules" else (config.get("rows") or [])
        y = self._table_row(self.left, y, widths, [col.get("header", "") for col in columns], bold=True, fill=header_bg)
        for index, row in enumerate(rows):
            cells = [substitute(str(row.get(col.get("field"), "")), self.values) for col in columns]
            y = self._table_row(self.left, y, widths, cells, fill=alternate if index % 2 == 1 else None)
        return y + 5

    def draw_signature(self, block, config, y):
        s = self.settings
        align = config.get("signatureAlign") or "left"
        line_x = self._aligned_x(align, DocumentDesign.SIGNATURE_LINE)

        signature = self._load_image(s.get("director_signature_url"))
        if signature:
            img_x = self._aligned_x(align, DocumentDesign.SIGNATURE_IMG_WIDTH)
            if self._draw_image(signature, img_x, y - 5, DocumentDesign.SIGNATURE_IMG_WIDTH,
                                DocumentDesign.SIGNATURE_IMG_HEIGHT):
                y += 12

        self.c.setLineWidth(0.5)
        self.c.line(line_x * mm, self._y(y + 5), (line_x + DocumentDesign.SIGNATURE_LINE) * mm, self._y(y + 5))

        text_x = {"center": self.width / 2, "right": self.width - self.right}.get(align, line_x)
        self._text(text_x, y + 10, s.get("director_name") or "", DocumentDesign.FONT_BOLD, 10, align)
        title = f"{s.get('director_title') or ''} {s.get('institution_name') or ''}".strip()
        self._text(text_x, y + 15, title, DocumentDesign.FONT_REGULAR, 9, align)
        return y + 20

    def draw_image(self, block, config, y):
        source = config.get("imageSource") or "system-logo"
        url = {
            "system-logo": self.settings.get("logo_url"),
            "director-signature": self.settings.get("director_signature_url"),
            "custom-url": config.get("imageUrl"),
        }.get(source)
        width = config.get("width") or 40
        height = config.get("height") or 30

        image = self._load_image(url)
        if not image:
            return y
        x = self._aligned_x(config.get("blockAlign") or "center", width)
        if self._draw_image(image, x, y, width, height):
            return y + height + 5
        return y

    def draw_qrcode(self, block, config, y):
        size = config.get("width") or DocumentDesign.QR_SIZE
        align = config.get("qrcodeAlign") or "center"
        url = self.values.get("verification_url") or f"{self.values.get('certificate_code') or 'CERT-XXXX'}"
        x = self._aligned_x(align, size)

        widget = QrCodeWidget(url)
        x0, y0, x1, y1 = widget.getBounds()
        side = size * mm
        drawing = Drawing(side, side, transform=[side / (x1 - x0), 0, 0, side / (y1 - y0), 0, 0])
        drawing.add(widget)
        renderPDF.draw(drawing, self.c, x * mm, self._y(y + size))
        y += size + 5

        text_x = {"center": self.width / 2, "right": self.width - self.right}.get(align, self.left)
        self.c.setFillColor(HexColor(DocumentDesign.GRAY))
        self._text(text_x, y, "Verificação Digital", size=8, align=align)
        self.c.setFillColor(HexColor(DocumentDesign.TEXT))
        return y + 5

    def draw_spacer(self, block, config, y):
        return y + (config.get("marginTop") or config.get("height") or DocumentDesign.SPACER)

    def _footer_text(self, config):
        custom = config.get("footerText")
        if custom:
            return substitute(custom, self.values), False
        s = self.settings
        holder = s.get("pix_holder_name") or "JMR Empreendimentos digitais"
        text = (
            f"E-commerce por {s.get('institution_name') or ''} © {self.values['year']}. "
            f"{holder}/CNPJ: {s.get('institution_cnpj') or ''}. "
            f"Whatsapp: {s.get('institution_phone') or ''} ou e-mail: {s.get('institution_email') or ''}"
        )
        return text, True

    def _footer_lines(self, config):
        text, is_default = self._footer_text(config)
        max_width = (self.width - 2 * DocumentDesign.FOOTER_MARGIN) * mm
        lines = simpleSplit(text, DocumentDesign.FONT_REGULAR, 6, max_width)
        website = self.settings.get("institution_website")
        if is_default and website:
            lines.append(website)
        return lines

    def _footer_extent(self, block):
        lines = self._footer_lines(block.get("config") or {})
        top = self.height - DocumentDesign.FOOTER_OFFSET
        return top, top + len(lines) * DocumentDesign.FOOTER_LINE

    def draw_footer(self, config):
        """Rodapé fixo no fim da página; não move o cursor"""
        align = config.get("footerAlign") or "center"
        x = {
            "left": DocumentDesign.FOOTER_MARGIN,
            "right": self.width - DocumentDesign.FOOTER_MARGIN,
        }.get(align, self.width / 2)
        top = self.height - DocumentDesign.FOOTER_OFFSET

        self.c.setFillColor(HexColor(DocumentDesign.GRAY))
        for index, line in enumerate(self._footer_lines(config)):
            self._text(x, top + index * DocumentDesign.FOOTER_LINE, line, size=6, align=align)
        self.c.setFillColor(HexColor(DocumentDesign.TEXT))


def render_document(blocks, data: dict, settings: dict, margins: dict = None,
                    orientation: str = "portrait", page_format: str = "a4") -> bytes:
    """Gera o PDF e retorna os bytes"""
    renderer = DocumentRenderer(blocks, data, settings, margins, orientation, page_format)
    pdf_bytes = renderer.render()
    logger.info(f"PDF gerado: {len(renderer.blocks)} blocos, {renderer.page} página(s)")
    return pdf_bytes
