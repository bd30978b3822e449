import logging

from flask import current_app
from flask_mail import Message
from markupsafe import escape

from autoparts import mail
from autoparts.utils import pricing


def _lines_text(order):
    return "\n".join(
        f"    {item.quantity} x {item.part_name} ({item.part_number}) @ {pricing.round_money(item.unit_price)} = {pricing.round_money(item.total_price)}"
        for item in order.items
    )


def _lines_html(order):
    return "".join(
        f"<tr><td>{escape(item.part_name)}</td><td>{escape(item.part_number)}</td><td>{item.quantity}</td>"
        f"<td>{pricing.round_money(item.unit_price)}</td><td>{pricing.round_money(item.total_price)}</td></tr>"
        for item in order.items
    )


def send_order_confirmation(order, currency=None):
    """
    Sends the order receipt to the address recorded on the order.
    :param order: a committed Order with its items loaded
    :param currency: display currency code, defaults to DEFAULT_CURRENCY
    Returns False when the order has no email address, True once handed to the mail server.
    """
    if not order.user_email:
        logging.info(f"[MAIL] Order {order.order_number} has no email address; receipt not sent")
        return False
    currency = currency or current_app.config.get('DEFAULT_CURRENCY', 'AED')
    subject = f"Your AutoParts order {order.order_number}"

    text = f"""
    Thank you for your order!

    Order number: {order.order_number}
    Items:
{_lines_text(order)}

    Subtotal: {currency} {pricing.round_money(order.subtotal)}
    Tax: {currency} {pricing.round_money(order.tax_amount)}
    Shipping: {currency} {pricing.round_money(order.shipping_cost)}
    Total: {currency} {pricing.round_money(order.total_amount)}

    Shipping to:
    {order.shipping_address}
    """
    html = f"""
    <html><body>
    <h2>Thank you for your order!</h2>
    <p><strong>Order number:</strong> {order.order_number}</p>
    <table>
    <tr><th>Part</th><th>Part number</th><th>Qty</th><th>Unit price</th><th>Total</th></tr>
    {_lines_html(order)}
    </table>
    <p>Subtotal: {currency} {pricing.round_money(order.subtotal)}<br>
    Tax: {currency} {pricing.round_money(order.tax_amount)}<br>
    Shipping: {currency} {pricing.round_money(order.shipping_cost)}</p>
    <p><strong>Total:</strong> {currency} {pricing.round_money(order.total_amount)}</p>
    <p><strong>Shipping to:</strong><br>{escape(order.shipping_address)}</p>
    </body></html>
    """
    msg = Message(subject=subject, recipients=[order.user_email], body=text, html=html)
    mail.send(msg)
    logging.info(f"[MAIL] Receipt for {order.order_number} sent to {order.user_email}")
    return True
