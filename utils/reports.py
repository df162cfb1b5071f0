import csv
import io

from flask import send_file
from openpyxl import Workbook
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

HEADERS = ["Date", "Name", "Role", "Action", "Status", "Time", "IP Address"]


def _rows(records):
    for record in records:
        timestamp = record.get("timestamp")
        yield [
            record.get("date", ""),
            record.get("userName") or "",
            record.get("userRole") or "",
            record.get("action") or "",
            record.get("status") or "",
            timestamp.strftime("%H:%M:%S") if timestamp else "",
            record.get("ipAddress") or "",
        ]


# ---------------- Export CSV ----------------
def export_csv(records, filename="attendance.csv"):
    si = io.StringIO()
    cw = csv.writer(si)
    cw.writerow(HEADERS)
    for row in _rows(records):
        cw.writerow(row)

    output = io.BytesIO()
    output.write(si.getvalue().encode("utf-8"))
    output.seek(0)
    return send_file(output, mimetype="text/csv", as_attachment=True, download_name=filename)


# ---------------- Export Excel ----------------
def export_excel(records, filename="attendance.xlsx"):
    wb = Workbook()
    ws = wb.active
    ws.title = "Attendance"
    ws.append(HEADERS)
    for row in _rows(records):
        ws.append(row)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return send_file(output, mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                     as_attachment=True, download_name=filename)


# ---------------- Export PDF ----------------
def export_pdf(records, title="Attendance Report", filename="attendance.pdf"):
    columns = [40, 110, 220, 330, 390, 450, 500]

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    y = height - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, title)
    y -= 30

    def header(y):
        c.setFont("Helvetica-Bold", 9)
        for x, label in zip(columns, HEADERS):
            c.drawString(x, y, label)
        c.setFont("Helvetica", 9)
        return y - 18

    y = header(y)
    for row in _rows(records):
        if y < 50:
            c.showPage()
            y = header(height - 50)
        for x, value in zip(columns, row):
            c.drawString(x, y, str(value)[:22])
        y -= 16

    c.save()
    buffer.seek(0)
    return send_file(buffer, mimetype="application/pdf", as_attachment=True, download_name=filename)


EXPORTERS = {
    "csv": export_csv,
    "xlsx": export_excel,
    "pdf": export_pdf,
}
