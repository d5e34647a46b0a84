"""Status lifecycle for orders, batches, shipments, invoices, payment requests and tickets.

    from radiopharm.lifecycle.services import transition

    transition(order, OrderStatus.SUBMITTED, actor=request.user)
"""
