import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse

from db import ensure_schema
from models import Event, EventIn, EventKind, RecordFilter
from repo_slots import SlotRepo
from service_records import RecordStore, StoreNotInitializedError
from settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# One store per process. Routes stay thin and only call store operations;
# the lifespan below owns init/teardown.
repo = SlotRepo()
store = RecordStore(repo)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        ensure_schema()
    except sqlite3.Error as e:
        logger.warning("Could not prepare storage at %r: %s", settings.storage_path, e)
    store.init()
    try:
        yield
    finally:
        store.teardown()


app = FastAPI(title="Baby Log", lifespan=lifespan)


@app.get("/health")
def health():
    try:
        repo.ping()
        return {"ok": True}
    except sqlite3.Error as e:
        raise HTTPException(status_code=500, detail=f"Storage health check failed: {e}")


@app.get("/records")
def list_records(selector: RecordFilter = Query(RecordFilter.ALL, alias="filter")) -> List[Event]:
    try:
        return store.filter(selector)
    except StoreNotInitializedError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/records", status_code=201)
def add_record(event: EventIn) -> Event:
    value = event.amount if event.type is EventKind.FEEDING else event.status
    try:
        return store.add_event(event.type, value, note=event.note)
    except StoreNotInitializedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except sqlite3.Error as e:
        logger.exception("Saving new record failed")
        raise HTTPException(status_code=500, detail=f"Save failed: {e}")


@app.delete("/records/{event_id}")
def delete_record(event_id: str) -> List[Event]:
    # The UI confirms with the user before calling this; the store does not.
    try:
        return store.delete_event(event_id)
    except StoreNotInitializedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except sqlite3.Error as e:
        logger.exception("Deleting record %s failed", event_id)
        raise HTTPException(status_code=500, detail=f"Delete failed: {e}")


@app.get("/ui", response_class=HTMLResponse)
def ui():
    return """
<!doctype html>
<html lang="zh-TW">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>育兒生活助手</title>
  <style>
    body { font-family: Arial, sans-serif; background: #f3f4f6; margin: 0; padding: 32px 16px; }
    .wrap { max-width: 440px; margin: 0 auto; }
    h1 { color: #2563eb; text-align: center; margin-bottom: 4px; }
    .sub { text-align: center; color: #4b5563; margin-top: 0; }
    .card { background: #fff; border-radius: 16px; padding: 20px; margin: 20px 0; box-shadow: 0 4px 12px rgba(0,0,0,.08); }
    .tabs { display: flex; background: #f3f4f6; padding: 4px; border-radius: 12px; }
    .tabs button { flex: 1; border: 0; padding: 8px; border-radius: 8px; background: transparent; color: #6b7280; }
    .tabs button.on { background: #fff; color: #2563eb; }
    label { display: block; font-size: 14px; color: #374151; margin: 12px 0 4px; }
    input, select { width: 100%; box-sizing: border-box; padding: 8px 12px; border: 1px solid #d1d5db; border-radius: 8px; }
    .submit { width: 100%; margin-top: 16px; padding: 12px; border: 0; border-radius: 12px; background: #2563eb; color: #fff; font-weight: bold; }
    .head { display: flex; justify-content: space-between; align-items: center; }
    .head select { width: auto; border: 0; background: transparent; color: #6b7280; }
    .row { background: #fff; padding: 14px; border-radius: 12px; margin: 10px 0; display: flex; justify-content: space-between; }
    .dot { display: inline-block; width: 8px; height: 8px; border-radius: 50%; margin-right: 6px; }
    .ts { color: #9ca3af; font-size: 12px; }
    .note { color: #6b7280; font-size: 14px; font-style: italic; }
    .del { border: 0; background: transparent; color: #d1d5db; cursor: pointer; }
    .del:hover { color: #f87171; }
    .empty { text-align: center; color: #9ca3af; font-style: italic; padding: 40px 0; }
  </style>
</head>
<body>
<div class="wrap">
  <h1>育兒生活助手</h1>
  <p class="sub">輕鬆紀錄寶寶的成長每一刻</p>

  <div class="card">
    <form id="form">
      <div class="tabs">
        <button type="button" id="tab-feeding" class="on" onclick="setType('feeding')">餵奶紀錄</button>
        <button type="button" id="tab-diaper" onclick="setType('diaper')">尿布紀錄</button>
      </div>
      <div id="amount-box">
        <label>奶量 (ml)</label>
        <input id="amount" type="number" step="any" required placeholder="輸入毫升數"/>
      </div>
      <div id="status-box" style="display:none">
        <label>狀態</label>
        <select id="status">
          <option value="wet">濕 (尿尿)</option>
          <option value="dirty">髒 (便便)</option>
          <option value="both">都有</option>
          <option value="dry">乾爽</option>
        </select>
      </div>
      <label>備註 (選填)</label>
      <input id="note" type="text" placeholder="例如：溢奶、顏色偏綠..."/>
      <button class="submit" type="submit">新增紀錄</button>
    </form>
  </div>

  <div class="head">
    <h2>歷史紀錄</h2>
    <select id="filter" onchange="load()">
      <option value="all">全部</option>
      <option value="feeding">僅奶量</option>
      <option value="diaper">僅尿布</option>
    </select>
  </div>
  <div id="out"></div>
</div>

<script>
const STATUS_LABELS = {wet: '尿尿', dirty: '便便', both: '都有', dry: '乾爽'};
let type = 'feeding';

function setType(t){
  type = t;
  document.getElementById('tab-feeding').className = t === 'feeding' ? 'on' : '';
  document.getElementById('tab-diaper').className = t === 'diaper' ? 'on' : '';
  document.getElementById('amount-box').style.display = t === 'feeding' ? '' : 'none';
  document.getElementById('status-box').style.display = t === 'diaper' ? '' : 'none';
  document.getElementById('amount').required = t === 'feeding';
}

function label(r){
  if (r.type === 'feeding') return `餵奶: ${r.amount === null ? '' : r.amount}ml`;
  return `尿布: ${STATUS_LABELS[r.status] || r.status}`;
}

function render(records){
  const out = document.getElementById('out');
  out.innerHTML = '';
  if (records.length === 0) {
    const p = document.createElement('p');
    p.className = 'empty';
    p.textContent = '尚無紀錄';
    out.appendChild(p);
    return;
  }
  records.forEach(r => {
    const row = document.createElement('div');
    row.className = 'row';
    const body = document.createElement('div');
    const title = document.createElement('div');
    const dot = document.createElement('span');
    dot.className = 'dot';
    dot.style.background = r.type === 'feeding' ? '#60a5fa' : '#facc15';
    const b = document.createElement('b');
    b.textContent = label(r);
    title.append(dot, b);
    const ts = document.createElement('div');
    ts.className = 'ts';
    ts.textContent = r.time;
    body.append(title, ts);
    if (r.note) {
      const note = document.createElement('div');
      note.className = 'note';
      note.textContent = `「${r.note}」`;
      body.appendChild(note);
    }
    const del = document.createElement('button');
    del.className = 'del';
    del.textContent = '刪除';
    del.onclick = () => remove(r.id);
    row.append(body, del);
    out.appendChild(row);
  });
}

async function load(){
  const filter = document.getElementById('filter').value;
  const res = await fetch(`/records?filter=${filter}`);
  render(await res.json());
}

async function remove(id){
  if (!window.confirm('確定要刪除這條紀錄嗎？')) return;
  await fetch(`/records/${encodeURIComponent(id)}`, {method: 'DELETE'});
  await load();
}

document.getElementById('form').addEventListener('submit', async (e) => {
  e.preventDefault();
  const body = {type, note: document.getElementById('note').value};
  if (type === 'feeding') body.amount = document.getElementById('amount').value;
  else body.status = document.getElementById('status').value;
  const res = await fetch('/records', {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
    body: JSON.stringify(body),
  });
  if (!res.ok) {
    const err = await res.json();
    alert(err.detail);
    return;
  }
  document.getElementById('amount').value = '';
  document.getElementById('note').value = '';
  await load();
});

load();
</script>
</body>
</html>
"""
