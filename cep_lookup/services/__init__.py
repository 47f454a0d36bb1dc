"""
                        Services Module

Contains the business logic services with the hybrid architecture pattern.
Each service runs against simulated backends in development and real
APIs in production.

Services:
    - cep: CEP (postal code) lookup with multi-provider fallback
"""
