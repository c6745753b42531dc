import csv
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Set

import markdown
import openpyxl
from loguru import logger
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import LongTable, Paragraph, SimpleDocTemplate, Spacer, TableStyle
from reportlab.platypus.flowables import KeepTogether

from ..models.entities import CapacityReport, Holiday, Sprint
from .capacity import is_working_day, iter_dates

CSV_HEADERS = [
    "Team Member",
    "Default Capacity",
    "Total Working Days",
    "Holidays",
    "Available Days",
    "Capacity (Story Points)",
]


def format_points(value: float) -> str:
    """Formata story points sem casas decimais desnecessárias (8.0 -> 8)"""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


class CapacityReportGenerator:
    """Serviço responsável pela exportação do relatório de capacity"""

    def __init__(
        self,
        report: CapacityReport,
        sprint: Sprint,
        holidays: List[Holiday],
        output_dir: str,
        team_name: Optional[str] = None,
    ):
        """
        Inicializa o gerador de relatórios

        Args:
            report: Relatório de capacity já calculado
            sprint: Sprint do relatório
            holidays: Ausências registradas na sprint
            output_dir: Diretório de saída dos relatórios
            team_name: Nome do time, exibido no título
        """
        self.report = report
        self.sprint = sprint
        self.output_dir = Path(output_dir)
        self.team_name = team_name

        self.holidays_by_member: Dict[int, Set[date]] = defaultdict(set)
        for holiday in holidays:
            self.holidays_by_member[holiday.member_id].add(holiday.date)

        # Cria o diretório de saída se não existir
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Define os estilos do PDF
        self.styles = getSampleStyleSheet()
        self._setup_styles()

        # Define as cores para o Excel
        self.excel_colors = {
            "weekend": PatternFill(start_color="FFB3B3", end_color="FFB3B3", fill_type="solid"),  # Vermelho claro
            "holiday": PatternFill(start_color="B3B3B3", end_color="B3B3B3", fill_type="solid"),  # Cinza claro
            "available": PatternFill(start_color="B3FFB3", end_color="B3FFB3", fill_type="solid"),  # Verde claro
            "header": PatternFill(start_color="2563EB", end_color="2563EB", fill_type="solid"),
        }

    @property
    def file_stem(self) -> str:
        return self.report.sprint_name.replace(" ", "_")

    def _setup_styles(self):
        """Configura estilos personalizados para o relatório"""
        self.styles.add(ParagraphStyle(
            name="CustomTitle",
            parent=self.styles["Title"],
            fontSize=16,
            spaceAfter=30,
            textColor=colors.HexColor("#2563EB"),
            alignment=TA_CENTER,
        ))

        self.styles.add(ParagraphStyle(
            name="CustomHeading1",
            parent=self.styles["Heading1"],
            fontSize=14,
            spaceAfter=12,
            textColor=colors.HexColor("#2563EB"),
            alignment=TA_LEFT,
        ))

        self.styles.add(ParagraphStyle(
            name="NormalWrap",
            parent=self.styles["Normal"],
            fontSize=10,
            leading=12,
            spaceAfter=6,
            alignment=TA_LEFT,
        ))

        self.styles.add(ParagraphStyle(
            name="TableCell",
            parent=self.styles["Normal"],
            fontSize=9,
            leading=11,
            alignment=TA_LEFT,
        ))

        self.styles.add(ParagraphStyle(
            name="TableHeader",
            parent=self.styles["Normal"],
            fontSize=10,
            leading=12,
            alignment=TA_LEFT,
            fontName="Helvetica-Bold",
            textColor=colors.white,
        ))

    def _create_table_style(self, header_bg_color=colors.HexColor("#2563EB")):
        """Cria um estilo padrão para as tabelas, com a linha TOTAL em negrito"""
        return TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), header_bg_color),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("ALIGN", (0, 0), (-1, -1), "LEFT"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("GRID", (0, 0), (-1, -1), 1, colors.black),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ("ROWBACKGROUNDS", (0, 1), (-1, -2), [colors.white, colors.HexColor("#EFF6FF")]),
            ("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#F3F4F6")),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ])

    def _table_rows(self) -> List[List[str]]:
        """Linhas da tabela de capacity, incluindo a linha TOTAL"""
        rows = [
            [
                mc.member_name,
                str(mc.default_capacity),
                str(mc.total_working_days),
                str(mc.holidays),
                str(mc.available_days),
                format_points(mc.capacity),
            ]
            for mc in self.report.member_capacities
        ]
        rows.append(["TOTAL", "", "", "", "", format_points(self.report.total_capacity)])
        return rows

    def generate_csv(self) -> Path:
        """
        Gera o CSV de capacity no formato <sprint>_capacity.csv

        Returns:
            Path: Caminho do arquivo gerado
        """
        csv_path = self.output_dir / f"{self.report.sprint_name}_capacity.csv"
        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, lineterminator="\n")
            writer.writerow(CSV_HEADERS)
            writer.writerows(self._table_rows())
        logger.info(f"Relatório CSV gerado em {csv_path}")
        return csv_path

    def _generate_markdown(self) -> str:
        """Gera o conteúdo do relatório em Markdown"""
        report = []

        title = f"# Capacity da Sprint {self.report.sprint_name}"
        if self.team_name:
            title += f" - {self.team_name}"
        report.append(title)
        report.append("")

        report.append("## 1. Resumo da Sprint")
        report.append("")
        report.append(f"- **Início:** {self.sprint.start_date.strftime('%d/%m/%Y')}")
        report.append(f"- **Término:** {self.sprint.end_date.strftime('%d/%m/%Y')}")
        report.append(f"- **Dias Úteis:** {self.report.total_working_days}")
        report.append(f"- **Load Factor:** {self.report.load_factor}")
        report.append(f"- **Capacity Total:** {format_points(self.report.total_capacity)} story points")
        report.append("")

        report.append("## 2. Capacity por Membro")
        report.append("")
        report.append("| " + " | ".join(CSV_HEADERS) + " |")
        report.append("|" + "|".join("---" for _ in CSV_HEADERS) + "|")
        for row in self._table_rows():
            report.append("| " + " | ".join(cell or "-" for cell in row) + " |")
        report.append("")

        report.append("Dias Disponíveis = Dias Úteis - Ausências")
        report.append("")
        return "\n".join(report)

    def generate_markdown(self) -> Path:
        """Gera o relatório em Markdown e sua versão HTML"""
        markdown_content = self._generate_markdown()
        markdown_path = self.output_dir / f"relatorio_capacity_{self.file_stem}.md"
        markdown_path.write_text(markdown_content, encoding="utf-8")
        logger.info(f"Relatório Markdown gerado em {markdown_path}")

        html_path = self.output_dir / f"relatorio_capacity_{self.file_stem}.html"
        html_body = markdown.markdown(markdown_content, extensions=["tables"])
        html_path.write_text(
            f"<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\">"
            f"<title>{self.report.sprint_name}</title></head>\n<body>\n{html_body}\n</body></html>\n",
            encoding="utf-8",
        )
        logger.info(f"Relatório HTML gerado em {html_path}")
        return markdown_path

    def generate_pdf(self) -> Path:
        """Gera o relatório de capacity em PDF"""
        pdf_path = self.output_dir / f"relatorio_capacity_{self.file_stem}.pdf"
        doc = SimpleDocTemplate(
            str(pdf_path),
            pagesize=A4,
            rightMargin=2 * cm,
            leftMargin=2 * cm,
            topMargin=2 * cm,
            bottomMargin=2 * cm,
        )

        elements = []
        title = f"Capacity da Sprint: {self.report.sprint_name}"
        if self.team_name:
            title += f" - {self.team_name}"
        elements.append(Paragraph(title, self.styles["CustomTitle"]))
        elements.append(Spacer(1, 12))

        elements.append(Paragraph("1. Resumo da Sprint", self.styles["CustomHeading1"]))
        elements.append(Paragraph(
            f"Período: {self.sprint.start_date.strftime('%d/%m/%Y')} a {self.sprint.end_date.strftime('%d/%m/%Y')}",
            self.styles["NormalWrap"],
        ))
        elements.append(Paragraph(f"Dias úteis: {self.report.total_working_days}", self.styles["NormalWrap"]))
        elements.append(Paragraph(f"Load factor: {self.report.load_factor}", self.styles["NormalWrap"]))
        elements.append(Paragraph(
            f"Capacity total: {format_points(self.report.total_capacity)} story points",
            self.styles["NormalWrap"],
        ))
        elements.append(Spacer(1, 12))

        elements.append(Paragraph("2. Capacity por Membro", self.styles["CustomHeading1"]))
        capacity_data = [[Paragraph(header, self.styles["TableHeader"]) for header in CSV_HEADERS]]
        for row in self._table_rows():
            capacity_data.append([Paragraph(row[0], self.styles["TableCell"])] + row[1:])

        available_width = doc.width
        capacity_table = LongTable(
            capacity_data,
            colWidths=[
                available_width * 0.25,  # Membro
                available_width * 0.15,
                available_width * 0.15,
                available_width * 0.13,
                available_width * 0.15,
                available_width * 0.17,  # Capacity
            ],
        )
        capacity_table.setStyle(self._create_table_style())
        elements.append(KeepTogether(capacity_table))

        doc.build(elements)
        logger.info(f"Relatório PDF gerado em {pdf_path}")
        return pdf_path

    def generate_excel(self) -> Path:
        """
        Gera o relatório em Excel

        A primeira aba traz a tabela de capacity; a segunda, o calendário da
        sprint por membro com fins de semana e ausências destacados.
        """
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Capacity"

        header_font = Font(bold=True, color="FFFFFF")
        for col, header in enumerate(CSV_HEADERS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = self.excel_colors["header"]
            cell.alignment = Alignment(horizontal="center")
            ws.column_dimensions[get_column_letter(col)].width = 22

        for mc in self.report.member_capacities:
            ws.append([
                mc.member_name,
                mc.default_capacity,
                mc.total_working_days,
                mc.holidays,
                mc.available_days,
                mc.capacity,
            ])
        ws.append(["TOTAL", None, None, None, None, self.report.total_capacity])
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True)

        self._write_calendar(wb.create_sheet("Calendário"))

        excel_path = self.output_dir / f"relatorio_capacity_{self.file_stem}.xlsx"
        wb.save(str(excel_path))
        logger.info(f"Relatório Excel gerado em {excel_path}")
        return excel_path

    def _write_calendar(self, ws) -> None:
        """Grade membros x datas da sprint"""
        thin = Side(style="thin")
        border = Border(left=thin, right=thin, top=thin, bottom=thin)
        days = list(iter_dates(self.sprint.start_date, self.sprint.end_date))

        ws.column_dimensions["A"].width = 25
        ws.cell(row=1, column=1, value="Membro").font = Font(bold=True)
        for col, day in enumerate(days, start=2):
            cell = ws.cell(row=1, column=col, value=day)
            cell.number_format = "dd/mm"
            cell.alignment = Alignment(horizontal="center")
            cell.font = Font(bold=True)
            ws.column_dimensions[get_column_letter(col)].width = 7

        for row, mc in enumerate(self.report.member_capacities, start=2):
            ws.cell(row=row, column=1, value=mc.member_name).border = border
            member_holidays = self.holidays_by_member.get(mc.member_id, set())
            for col, day in enumerate(days, start=2):
                cell = ws.cell(row=row, column=col)
                cell.border = border
                if not is_working_day(day):
                    cell.fill = self.excel_colors["weekend"]
                elif day in member_holidays:
                    cell.fill = self.excel_colors["holiday"]
                    cell.value = "X"
                    cell.alignment = Alignment(horizontal="center")
                else:
                    cell.fill = self.excel_colors["available"]

        # Legenda
        legend_row = len(self.report.member_capacities) + 3
        ws.cell(row=legend_row, column=1, value="Legenda:").font = Font(bold=True)
        legend_items = [
            ("Fim de Semana", self.excel_colors["weekend"]),
            ("Ausência", self.excel_colors["holiday"]),
            ("Disponível", self.excel_colors["available"]),
        ]
        for i, (label, fill) in enumerate(legend_items, start=1):
            ws.cell(row=legend_row + i, column=1, value=label)
            ws.cell(row=legend_row + i, column=2).fill = fill

    def generate(self) -> List[Path]:
        """Gera o relatório de capacity em CSV, Markdown/HTML, PDF e Excel"""
        return [
            self.generate_csv(),
            self.generate_markdown(),
            self.generate_pdf(),
            self.generate_excel(),
        ]
