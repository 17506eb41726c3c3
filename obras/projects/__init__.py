"""
Project management module.

Projects move through presupuesto -> planificacion -> en_ejecucion ->
finalizado/cancelado, carry budget versions, and are the anchor for
billing plans and the financial report.
"""
