from db import DDL, ensure_schema
from settings import settings

print('Storage file:', settings.storage_path)
print(DDL.strip())
ensure_schema()
print('DDL applied')
