"""Payroll runs, payslips and the payslip calculator."""
