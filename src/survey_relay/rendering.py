# src/survey_relay/rendering.py

"""
HTML email document for a survey submission.

Callers pass rows and summary cells that are already escaped (see
`formatting.project_rows` and `formatting.extract_summary`). The free-text
arguments of `build_email_html` (customer name, timestamp, site name) are
escaped here.
"""

from .formatting import NAME_NOT_PROVIDED, NOT_FILLED, RenderedRow, Summary, escape_html

_FONT_STACK = "-apple-system,BlinkMacSystemFont,'Segoe UI',Arial,sans-serif"
_CELL_STYLE = "padding:8px 10px;color:#111827;font-size:13px;border-bottom:1px solid #e5e7eb;vertical-align:top;"

INTERNAL_USE_NOTE = (
    "本信件內容僅供服務品質追蹤與內部參考，請妥善保存顧客資訊。"
    "如需再次聯繫顧客，建議先透過 LINE 或電話確認意願與聯絡時段。"
)


def render_row(row: RenderedRow) -> str:
    value = row.value or f'<span style="color:#9ca3af">({NOT_FILLED})</span>'
    return f"""
          <tr style="background:{row.background};">
            <td style="{_CELL_STYLE}font-weight:600;">
              {row.label}
            </td>
            <td style="{_CELL_STYLE}line-height:1.5;">
              {value}
            </td>
          </tr>"""


def _summary_cell(caption: str, value: str) -> str:
    return f"""
                      <tr>
                        <td style="padding:8px 10px;border-radius:10px;border:1px solid #e5e7eb;background-color:#ffffff;">
                          <div style="font-size:12px;color:#6b7280;margin-bottom:2px;">{caption}</div>
                          <div style="font-size:14px;color:#111827;font-weight:600;">{value}</div>
                        </td>
                      </tr>"""


def render_summary(summary: Summary) -> str:
    cells = [
        _summary_cell("整體滿意度", summary.satisfaction),
        _summary_cell("服務人員表現", summary.staff_rating),
        _summary_cell("推薦意願分數", summary.recommend_score),
        _summary_cell("再次委託意願", summary.rebook_intent),
    ]
    spacer = '\n                      <tr><td style="height:4px;font-size:0;line-height:0;"></td></tr>'
    return spacer.join(cells)


def build_email_html(
    rows: list[RenderedRow],
    summary: Summary,
    submitted_at: str,
    customer_name: str,
    site_name: str,
) -> str:
    """
    Assemble the complete, self-contained HTML body of the notification email.

    Args:
        rows: Escaped detail rows in render order.
        summary: Escaped summary cells.
        submitted_at: Display timestamp (escaped here).
        customer_name: Display name, empty when not provided (escaped here).
        site_name: Name of the sending system shown in the footer (escaped here).
    """
    display_name = escape_html(customer_name or NAME_NOT_PROVIDED)
    body_rows = "".join(render_row(row) for row in rows)

    return f"""<!DOCTYPE html>
<html lang="zh-Hant">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
  </head>
  <body style="margin:0;padding:0;">
    <div style="margin:0;padding:0;background-color:#f3f4f6;font-family:{_FONT_STACK};">
      <table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0">
        <tr>
          <td align="center" style="padding:16px 8px;">
            <table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0" style="max-width:480px;background-color:#ffffff;border-radius:16px;overflow:hidden;border:1px solid #e5e7eb;">
              <!-- Header -->
              <tr>
                <td style="padding:16px 18px 14px;background:linear-gradient(135deg,#eff6ff,#fef3c7);border-bottom:1px solid #e5e7eb;">
                  <div style="font-size:12px;color:#6b7280;margin-bottom:4px;">自然大叔清洗服務｜顧客滿意度新回覆</div>
                  <div style="font-size:17px;color:#0f172a;font-weight:600;line-height:1.4;margin-bottom:2px;">
                    {display_name} 的問卷結果
                  </div>
                  <div style="margin-top:4px;font-size:12px;color:#6b7280;">
                    送出時間：<span>{escape_html(submitted_at)}</span>
                  </div>
                </td>
              </tr>

              <!-- Summary -->
              <tr>
                <td style="padding:12px 18px 10px;background-color:#f9fafb;">
                  <div style="font-size:12px;font-weight:600;color:#6b7280;margin-bottom:6px;">重點摘要</div>
                  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0" style="border-collapse:collapse;">{render_summary(summary)}
                  </table>
                </td>
              </tr>

              <!-- Full details -->
              <tr>
                <td style="padding:14px 18px 10px;">
                  <div style="font-size:13px;font-weight:600;color:#111827;margin-bottom:8px;">完整問卷內容</div>
                  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0" style="border-collapse:collapse;border:1px solid #e5e7eb;border-radius:12px;overflow:hidden;font-size:13px;">
                    <thead>
                      <tr style="background-color:#f3f4f6;">
                        <th align="left" style="padding:8px 10px;border-bottom:1px solid #e5e7eb;font-weight:600;color:#374151;width:36%;">題目</th>
                        <th align="left" style="padding:8px 10px;border-bottom:1px solid #e5e7eb;font-weight:600;color:#374151;">填答內容</th>
                      </tr>
                    </thead>
                    <tbody>{body_rows}
                    </tbody>
                  </table>
                </td>
              </tr>

              <!-- Note -->
              <tr>
                <td style="padding:10px 18px 8px;background-color:#f9fafb;">
                  <div style="font-size:11px;color:#6b7280;line-height:1.6;">
                    {INTERNAL_USE_NOTE}
                  </div>
                </td>
              </tr>

              <!-- Footer -->
              <tr>
                <td style="padding:8px 18px 14px;font-size:11px;color:#9ca3af;text-align:right;border-top:1px solid #e5e7eb;background-color:#f9fafb;">
                  此信件由「{escape_html(site_name)}」系統自動發送。
                </td>
              </tr>
            </table>
          </td>
        </tr>
      </table>
    </div>
  </body>
</html>
"""
