"""
Dobles de prueba compartidos (silver/gold en memoria, psycopg).
"""
