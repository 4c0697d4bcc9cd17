from collections import Counter

from db import ensure_schema
from repo_slots import SlotRepo
from service_records import RecordStore
from settings import settings

ensure_schema()
store = RecordStore(SlotRepo())
records = store.init()
counts = Counter(r.type for r in records)

print('Key:', settings.storage_key)
print('Total records:', len(records))
for kind, n in sorted(counts.items()):
    print(f'  {n:6d}  {kind}')
if records:
    print('Newest:', records[0].time)
    print('Oldest:', records[-1].time)
