def _wrap(title: str, greeting: str, body_html: str) -> str:
    """Shared responsive frame used by every outbound email."""
    return f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, Helvetica, sans-serif; background-color: #f4f6fa;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: #f4f6fa;">
        <tr>
            <td align="center" style="padding: 20px 0;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%; background-color: #ffffff; border-radius: 12px; overflow: hidden;">
                    <tr>
                        <td align="center" style="padding: 24px 20px; background: linear-gradient(135deg, #1e3a8a 0%, #2563eb 100%);">
                            <h2 style="margin: 0; color: #ffffff; font-size: 22px;">KM Media Training Institute</h2>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 30px 40px;">
                            <h1 style="margin: 0 0 20px 0; font-size: 20px; color: #2c3e50;">{greeting}</h1>
                            {body_html}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding: 20px 40px; background-color: #f8f9fa; border-top: 1px solid #e9ecef;">
                            <p style="margin: 0; font-size: 12px; color: #6c757d;">
                                This is an automated message, please do not reply.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""


def get_notification_email_template(full_name: str, title: str, message: str) -> str:
    """Generic notification email (registration updates, reminders)."""
    body = f"""
                            <p style="margin: 0 0 16px 0; font-size: 16px; color: #555555; line-height: 1.5;">{message}</p>
    """
    return _wrap(title, f"Hello, {full_name}!", body)


def get_payment_receipt_template(full_name: str, course_name: str, payment_type: str,
                                 amount: str, currency: str, reference: str,
                                 remaining_balance: str = None) -> str:
    """Receipt for a successful payment."""
    label = payment_type.replace('_', ' ').title()
    balance_row = ""
    if remaining_balance is not None:
        balance_row = f"""
                                <tr><td style="padding: 6px 0; color: #6c757d;">Remaining balance</td><td style="padding: 6px 0; text-align: right;">{currency} {remaining_balance}</td></tr>"""
    body = f"""
                            <p style="margin: 0 0 16px 0; font-size: 16px; color: #555555;">We have received your payment for <strong>{course_name}</strong>.</p>
                            <table role="presentation" width="100%" style="font-size: 14px; color: #2c3e50;">
                                <tr><td style="padding: 6px 0; color: #6c757d;">Payment</td><td style="padding: 6px 0; text-align: right;">{label}</td></tr>
                                <tr><td style="padding: 6px 0; color: #6c757d;">Amount</td><td style="padding: 6px 0; text-align: right;">{currency} {amount}</td></tr>
                                <tr><td style="padding: 6px 0; color: #6c757d;">Reference</td><td style="padding: 6px 0; text-align: right;">{reference}</td></tr>{balance_row}
                            </table>
    """
    return _wrap("Payment Receipt", f"Thank you, {full_name}!", body)
