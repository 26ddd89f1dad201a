#!/usr/bin/env python3
"""
Generates sample-data/faq_sample.xlsx, a small FAQ workbook for trying
faq-splitter by hand.

Run from the repo root:
    python sample-data/generate_faq_sample.py
    faq-splitter split sample-data/faq_sample.xlsx --no-prompt

Cases baked in:
  Sheet "Principal"
    - Rows marked "NO" in Publicable (dropped)
    - A row tagged only "Sedes" (dropped) and one tagged "Sedes; Ingreso" (kept)
    - Rows with an updated answer and with a proposed tag
    - A row whose tags hit two categories
    - A row with no tags and one with tags no category knows
  Sheet "Portada"
    - Cover sheet the splitter must leave alone
  Sheet "FAQ_Tramites_Equivalencias_SAG"
    - Stale category sheet from an older run; no row matches it now
"""

from pathlib import Path
import openpyxl
from openpyxl.styles import Font

OUTPUT = Path(__file__).parent / "faq_sample.xlsx"

wb = openpyxl.Workbook()

cover = wb.active
cover.title = "Portada"
cover["A1"] = "Preguntas frecuentes"
cover["A1"].font = Font(bold=True, size=14)
cover["A2"] = "Hoja de trabajo: Principal"

ws = wb.create_sheet("Principal")
headers = ["Pregunta", "Publicable", "Respuesta", "Respuesta Actualizada", "Etiqueta Original", "Etiqueta Propuesta"]
ws.append(headers)

data = [
    # pregunta                              publicable  respuesta                                  actualizada                           original                    propuesta
    ["¿Cuándo abre la inscripción?",        "SI",  "En marzo.",                               "Del 1 al 31 de marzo.",               "Inscripción",              ""],
    ["¿Hay becas para ingresantes?",        "SI",  "Sí, consultar en bienestar.",             "",                                    "Beca; Ingresantes",        ""],
    ["¿Dónde se rinde el examen?",          "SI",  "En el aula magna.",                       "",                                    "Examen",                   ""],
    ["¿Piden equivalencias al ingresar?",   "SI",  "Sí, con el programa sellado.",            "",                                    "Equivalencias",            "Ingreso"],
    ["¿Qué sedes tiene la universidad?",    "SI",  "Centro y Norte.",                         "",                                    "Sedes",                    ""],
    ["¿Hay cursado en la sede Norte?",      "SI",  "Sólo primer año.",                        "",                                    "Sedes; Ingreso",           ""],
    ["¿Cuál es la oferta de postgrados?",   "SI",  "Ver la web.",                             "",                                    "Postgrados; Oferta Académica", ""],
    ["¿Los alumnos pueden rendir libres?",  "SI",  "Depende de la cátedra.",                  "",                                    "Alumno; Examen; Varios",   ""],
    ["Pregunta en revisión",                "NO",  "Borrador.",                               "",                                    "Beca",                     ""],
    ["Pregunta sin etiquetar",              "SI",  "Pendiente.",                              "",                                    "",                         ""],
    ["¿Dónde queda el comedor?",            "SI",  "Planta baja.",                            "",                                    "Comedor",                  ""],
]

for row in data:
    ws.append(row)

for cell in ws[1]:
    cell.font = Font(bold=True)
ws.freeze_panes = "A2"
for letter, width in zip("ABCDEF", (36, 12, 40, 36, 30, 26)):
    ws.column_dimensions[letter].width = width

# Left over from an earlier split; nothing is tagged for it anymore
stale = wb.create_sheet("FAQ_Tramites_Equivalencias_SAG")
stale.append(headers)
stale.append(["¿Cuánto cuesta el arancel?", "SI", "No hay arancel.", "", "Aranceles", ""])

wb.save(OUTPUT)
print(f"Saved: {OUTPUT}")
