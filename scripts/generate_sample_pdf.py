#!/usr/bin/env python3
"""
Generate a sample FK benefits overview PDF for local development.

The figures are illustrative, not official. Use the real Försäkringskassan
document in production; this file exists so Solution 2 can be ingested and
queried without downloading anything.

Usage:
    python scripts/generate_sample_pdf.py [output_path]

Output (default):
    data/FK.pdf
"""

import sys
from pathlib import Path

from fpdf import FPDF


class BenefitsReport(FPDF):
    """A4 document with FK-styled header and page-numbered footer."""

    def header(self):
        self.set_font("Helvetica", "B", 10)
        self.set_text_color(0, 80, 60)
        self.cell(0, 8, "Försäkringskassan - Översikt av förmåner", 0, 1, "C")
        self.line(10, self.get_y(), 200, self.get_y())
        self.ln(4)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"Sida {self.page_no()}/{{nb}} | Exempeldata", 0, 0, "C")

    def section_title(self, title: str):
        self.set_font("Helvetica", "B", 14)
        self.set_text_color(0, 0, 0)
        self.ln(6)
        self.cell(0, 10, title, 0, 1)
        self.line(10, self.get_y(), 200, self.get_y())
        self.ln(2)

    def body_text(self, text: str):
        self.set_font("Helvetica", "", 10)
        self.set_text_color(30, 30, 30)
        self.multi_cell(0, 5.5, text)
        self.ln(2)

    def table(self, header: list[str], rows: list[list[str]]):
        widths = [80, 55, 55]
        self.set_font("Helvetica", "B", 10)
        for width, cell in zip(widths, header):
            self.cell(width, 7, cell, 1, 0, "L")
        self.ln()
        self.set_font("Helvetica", "", 10)
        for row in rows:
            for width, cell in zip(widths, row):
                self.cell(width, 7, cell, 1, 0, "L")
            self.ln()
        self.ln(3)


SECTIONS = [
    (
        "Föräldrapenning",
        "Föräldrapenning betalas ut i sammanlagt 480 dagar per barn. "
        "390 av dagarna betalas ut på sjukpenningnivå, vilket motsvarar "
        "knappt 80 procent av lönen upp till taket. De resterande 90 dagarna "
        "betalas ut på lägstanivå med 180 kronor per dag. Varje förälder har "
        "90 dagar som inte kan överlåtas till den andra föräldern.",
        (
            ["Del", "Antal dagar", "Ersättning"],
            [
                ["Sjukpenningnivå", "390", "ca 80 % av lönen"],
                ["Lägstanivå", "90", "180 kr/dag"],
                ["Grundnivå (ingen SGI)", "390", "250 kr/dag"],
            ],
        ),
    ),
    (
        "Barnbidrag",
        "Barnbidrag betalas ut automatiskt från månaden efter att barnet "
        "fötts till och med kvartalet barnet fyller 16 år. Bidraget är "
        "1 250 kronor per barn och månad. Familjer med fler än ett barn får "
        "dessutom flerbarnstillägg.",
        (
            ["Antal barn", "Flerbarnstillägg", "Totalt per månad"],
            [
                ["1", "0 kr", "1 250 kr"],
                ["2", "150 kr", "2 650 kr"],
                ["3", "730 kr", "4 480 kr"],
                ["4", "1 740 kr", "6 740 kr"],
            ],
        ),
    ),
    (
        "Sjukpenning",
        "Sjukpenning kan betalas ut när du inte kan arbeta på grund av "
        "sjukdom. Från dag 15 betalar Försäkringskassan sjukpenning, som är "
        "knappt 80 procent av den sjukpenninggrundande inkomsten (SGI). "
        "SGI kan högst vara 10 prisbasbelopp per år.",
        None,
    ),
    (
        "Tillfällig föräldrapenning (VAB)",
        "När du är hemma från arbetet för att ta hand om ett sjukt barn kan "
        "du få tillfällig föräldrapenning. Den kan betalas ut i högst 120 "
        "dagar per barn och år tills barnet fyller 12 år. Ersättningen är "
        "knappt 80 procent av lönen, upp till 7,5 prisbasbelopp per år.",
        None,
    ),
    (
        "Bostadsbidrag",
        "Barnfamiljer och unga mellan 18 och 29 år kan ha rätt till "
        "bostadsbidrag. Bidragets storlek beror på inkomst, boendekostnad, "
        "bostadens storlek och hur många barn som bor i hushållet.",
        None,
    ),
]


def build(output: Path) -> Path:
    pdf = BenefitsReport()
    pdf.alias_nb_pages()
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 14, "Förmåner från Försäkringskassan", 0, 1, "L")
    pdf.body_text(
        "Detta dokument sammanfattar de vanligaste förmånerna för familjer "
        "och förvärvsarbetande. Beloppen gäller per år om inget annat anges."
    )

    for title, text, table in SECTIONS:
        pdf.section_title(title)
        pdf.body_text(text)
        if table:
            header, rows = table
            pdf.table(header, rows)

    output.parent.mkdir(parents=True, exist_ok=True)
    pdf.output(str(output))
    return output


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("data/FK.pdf")
    path = build(target)
    print(f"Wrote {path}")
