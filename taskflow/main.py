from contextlib import asynccontextmanager
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field
from typing import Optional
import logging

from .auth_view import AuthView
from .config import Settings, get_settings
from .remote import RemoteError, SupabaseBackend
from .session import SessionController
from .shell import AppShell
from .todo_view import TodoListView

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────
#  ЖИЗНЕННЫЙ ЦИКЛ
# ─────────────────────────────────────────

def create_app(backend=None, settings: Optional[Settings] = None) -> FastAPI:
    """
    backend реализует AuthBackend и TaskBackend. Без него при старте
    создаётся клиент Supabase по настройкам окружения.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        remote = backend
        if remote is None:
            remote = await SupabaseBackend.connect(settings or get_settings())
        controller = SessionController(remote)
        await controller.start()
        shell = AppShell(controller, remote, remote)
        app.state.controller = controller
        app.state.shell = shell
        logger.info("TaskFlow started (%s)", "signed in" if controller.is_active else "signed out")
        try:
            yield
        finally:
            shell.close()
            controller.stop()
            logger.info("TaskFlow stopped")

    app = FastAPI(title="TaskFlow", version="1.0.0", lifespan=lifespan)
    app.middleware("http")(same_origin_only)
    app.include_router(router)
    app.add_api_route("/", serve_frontend, methods=["GET"],
                      response_class=HTMLResponse, include_in_schema=False)
    return app

async def same_origin_only(request: Request, call_next):
    """
    Процесс держит одну сессию на всех, поэтому запросы с чужих
    страниц отклоняются. Страница отдаётся с того же адреса.
    """
    origin = request.headers.get("origin")
    if origin is not None and origin != f"{request.url.scheme}://{request.headers.get('host', '')}":
        logger.warning("Refused request from origin %s", origin)
        return JSONResponse({"detail": "Cross-origin request refused"}, status_code=403)
    return await call_next(request)

def get_shell(request: Request) -> AppShell:
    return request.app.state.shell

def get_auth_view(shell: AppShell = Depends(get_shell)) -> AuthView:
    """Экран входа; при активной сессии его нет"""
    if shell.auth_view is None:
        raise HTTPException(409, "Already signed in")
    return shell.auth_view

def get_todo_view(shell: AppShell = Depends(get_shell)) -> TodoListView:
    """Экран задач; без сессии его нет"""
    if shell.todo_view is None:
        raise HTTPException(401, "Sign in required")
    return shell.todo_view

# ─────────────────────────────────────────
#  МОДЕЛИ ЗАПРОСОВ
# ─────────────────────────────────────────

class AuthForm(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class TodoCreate(BaseModel):
    # Пустой текст не ошибка: add() его просто пропускает
    title: str = ""

router = APIRouter(prefix="/api")

@router.get("/state", tags=["View"])
async def get_state(shell: AppShell = Depends(get_shell)):
    """Текущий экран и его состояние"""
    return await shell.render()

# ─────────────────────────────────────────
#  АВТОРИЗАЦИЯ
# ─────────────────────────────────────────

@router.post("/auth/submit", tags=["Auth"])
async def submit_auth(data: AuthForm, view: AuthView = Depends(get_auth_view),
                      shell: AppShell = Depends(get_shell)):
    """Вход или регистрация, в зависимости от режима экрана"""
    view.set_fields(data.email, data.password)
    try:
        await view.submit()
    except RemoteError as e:
        raise HTTPException(400, e.message)
    return await shell.render()

@router.post("/auth/mode", tags=["Auth"])
async def toggle_mode(view: AuthView = Depends(get_auth_view), shell: AppShell = Depends(get_shell)):
    view.toggle_mode()
    return await shell.render()

@router.post("/auth/continue", tags=["Auth"])
async def continue_to_sign_in(view: AuthView = Depends(get_auth_view), shell: AppShell = Depends(get_shell)):
    """Кнопка на панели после регистрации"""
    view.continue_to_sign_in()
    return await shell.render()

@router.post("/auth/signout", tags=["Auth"])
async def sign_out(view: TodoListView = Depends(get_todo_view), shell: AppShell = Depends(get_shell)):
    await view.sign_out()
    return await shell.render()

# ─────────────────────────────────────────
#  ЗАДАЧИ
# ─────────────────────────────────────────

@router.get("/todos", tags=["Tasks"])
async def reload_todos(view: TodoListView = Depends(get_todo_view), shell: AppShell = Depends(get_shell)):
    """Перечитать список из сервиса"""
    await view.fetch_todos()
    return await shell.render()

@router.post("/todos", tags=["Tasks"])
async def add_todo(data: TodoCreate, view: TodoListView = Depends(get_todo_view),
                   shell: AppShell = Depends(get_shell)):
    await view.add(data.title)
    return await shell.render()

@router.post("/todos/{task_id}/toggle", tags=["Tasks"])
async def toggle_todo(task_id: str, view: TodoListView = Depends(get_todo_view),
                      shell: AppShell = Depends(get_shell)):
    await view.toggle(task_id)
    return await shell.render()

@router.delete("/todos/{task_id}", tags=["Tasks"])
async def delete_todo(task_id: str, view: TodoListView = Depends(get_todo_view),
                      shell: AppShell = Depends(get_shell)):
    await view.delete(task_id)
    return await shell.render()

# ─────────────────────────────────────────
#  ФРОНТЕНД (встроен)
# ─────────────────────────────────────────

async def serve_frontend():
    return HTML

HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1.0"/>
  <title>TaskFlow</title>
  <style>
*,*::before,*::after{box-sizing:border-box;margin:0;padding:0}
:root{
  --bg:#eef0fb;--surface:#ffffff;--surface2:#f5f6fb;
  --border:rgba(17,24,39,0.08);--border-hover:rgba(17,24,39,0.18);
  --accent:#4f46e5;--accent-dim:rgba(79,70,229,0.1);
  --text:#111827;--text-muted:#6b7280;--done:#9ca3af;--ok:#22c55e;--danger:#ef4444;
  --radius:16px;--radius-sm:8px;--font:system-ui,-apple-system,'Segoe UI',sans-serif;
}
body{background:linear-gradient(135deg,#e0e7ff,#f3e8ff);color:var(--text);font-family:var(--font);min-height:100vh;line-height:1.5}
.app{max-width:760px;margin:0 auto;padding:48px 16px 80px}

/* AUTH */
.auth-wrap{display:flex;align-items:center;justify-content:center;min-height:80vh}
.auth-box{background:var(--surface);border-radius:var(--radius);padding:32px;width:100%;max-width:420px;box-shadow:0 20px 40px rgba(0,0,0,.08)}
.auth-title{font-size:26px;font-weight:700;text-align:center}
.auth-switch{font-size:13px;color:var(--text-muted);text-align:center;margin:8px 0 24px}
.auth-switch span{color:var(--accent);cursor:pointer;font-weight:600}
.field{margin-bottom:14px}
.field input,.inp{width:100%;background:var(--surface);border:1px solid var(--border-hover);border-radius:var(--radius-sm);padding:10px 13px;font-family:var(--font);font-size:14px;color:var(--text);outline:none}
.field input:focus,.inp:focus{border-color:var(--accent)}
.btn{display:flex;align-items:center;justify-content:center;gap:8px;border:none;border-radius:var(--radius-sm);padding:11px 20px;font-size:14px;font-weight:600;cursor:pointer;width:100%;background:var(--accent);color:#fff}
.btn:disabled{opacity:.5;cursor:not-allowed}
.ok-icon{font-size:40px;color:var(--ok);text-align:center}
.ok-text{text-align:center;color:var(--text-muted);margin:8px 0 20px}

/* HEADER */
.header{display:flex;align-items:center;justify-content:space-between;margin-bottom:28px}
.logo{font-size:28px;font-weight:700}
.user-email{font-size:13px;color:var(--text-muted)}
.btn-logout{background:var(--surface);border:1px solid var(--border);border-radius:var(--radius-sm);color:var(--text);padding:8px 14px;cursor:pointer;font-size:13px;font-weight:600}

/* TASKS */
.panel{background:var(--surface);border-radius:var(--radius);overflow:hidden;box-shadow:0 20px 40px rgba(0,0,0,.08)}
.add-form{display:flex;gap:12px;padding:16px;border-bottom:1px solid var(--border)}
.add-form .btn{width:auto;white-space:nowrap}
.task-card{display:flex;align-items:center;gap:14px;padding:12px 16px;border-bottom:1px solid var(--border)}
.task-card:hover{background:var(--surface2)}
.toggle{width:26px;height:26px;min-width:26px;border-radius:50%;border:2px solid var(--border-hover);background:none;cursor:pointer;color:#fff;font-size:13px;font-weight:700}
.task-card.done .toggle{background:var(--ok);border-color:var(--ok)}
.task-title{flex:1;font-size:15px}
.task-card.done .task-title{color:var(--done);text-decoration:line-through}
.btn-del{background:none;border:none;border-radius:var(--radius-sm);color:var(--text-muted);cursor:pointer;font-size:14px;padding:6px 9px}
.btn-del:hover{background:var(--surface2);color:var(--danger)}

/* MISC */
.empty{text-align:center;padding:40px 20px;color:var(--text-muted)}
.loading{display:flex;flex-direction:column;align-items:center;padding:60px;gap:10px;color:var(--text-muted);font-size:13px}
.spinner{width:26px;height:26px;border:2px solid var(--border);border-top-color:var(--accent);border-radius:50%;animation:spin .7s linear infinite}
@keyframes spin{to{transform:rotate(360deg)}}
.hidden{display:none!important}
  </style>
</head>
<body>
<div class="app">

  <div id="boot" class="loading"><div class="spinner"></div></div>

  <!-- ВХОД / РЕГИСТРАЦИЯ -->
  <div id="auth-section" class="auth-wrap hidden">
    <div id="auth-box" class="auth-box">
      <div class="auth-title" id="auth-title"></div>
      <div class="auth-switch"><span id="auth-prompt"></span><span id="auth-switch" onclick="toggleMode()"></span></div>
      <form id="auth-form" onsubmit="doAuth(event)">
        <div class="field"><input id="a-email" name="email" type="email" required placeholder="Email address" autocomplete="email"/></div>
        <div class="field"><input id="a-password" name="password" type="password" required placeholder="Password"/></div>
        <button class="btn" id="btn-auth" type="submit"></button>
      </form>
    </div>
    <div id="success-box" class="auth-box hidden">
      <div class="ok-icon">✓</div>
      <div class="auth-title" id="success-title"></div>
      <p class="ok-text" id="success-text"></p>
      <button class="btn" id="btn-continue" onclick="continueToSignIn()"></button>
    </div>
  </div>

  <!-- СПИСОК ЗАДАЧ -->
  <div id="main-section" class="hidden">
    <div class="header">
      <div>
        <div class="logo" id="todos-title"></div>
        <div class="user-email" id="user-email"></div>
      </div>
      <button class="btn-logout" id="btn-logout" onclick="doSignOut()"></button>
    </div>
    <div id="todos-loading" class="loading hidden"><div class="spinner"></div><p id="loading-text"></p></div>
    <div id="todos-panel" class="panel hidden">
      <form class="add-form" onsubmit="addTask(event)">
        <input class="inp" id="t-title" type="text"/>
        <button class="btn" id="btn-add" type="submit"></button>
      </form>
      <div id="empty" class="empty hidden"></div>
      <div id="task-list"></div>
    </div>
  </div>

</div>

<script>
let state = null;

// ── ИНИЦИАЛИЗАЦИЯ ──
window.onload = async () => {
  try{ state = await api('GET','/api/state'); render(); }
  catch(e){ alert(e.message); }
};

function render(){
  document.getElementById('boot').classList.add('hidden');
  const isAuth = state.view === 'auth';
  document.getElementById('auth-section').classList.toggle('hidden', !isAuth);
  document.getElementById('main-section').classList.toggle('hidden', isAuth);
  if(isAuth) renderAuth(state.auth); else renderTodos(state.todos);
}

// ── АВТ ──
function renderAuth(a){
  const ok = a.screen === 'success';
  document.getElementById('auth-box').classList.toggle('hidden', ok);
  document.getElementById('success-box').classList.toggle('hidden', !ok);
  if(ok){
    document.getElementById('success-title').textContent = a.title;
    document.getElementById('success-text').textContent = a.message;
    document.getElementById('btn-continue').textContent = a.action;
    return;
  }
  document.getElementById('auth-title').textContent = a.title;
  document.getElementById('auth-prompt').textContent = a.prompt;
  document.getElementById('auth-switch').textContent = a.switch;
  document.getElementById('btn-auth').textContent = a.submit;
  const email = document.getElementById('a-email');
  if(!email.value) email.value = a.email;
}

async function doAuth(ev){
  ev.preventDefault();
  const btn = document.getElementById('btn-auth');
  const label = btn.textContent;
  btn.disabled = true; btn.innerHTML = '<div class="spinner"></div>';
  try{
    state = await api('POST','/api/auth/submit',{
      email: document.getElementById('a-email').value,
      password: document.getElementById('a-password').value,
    });
  }catch(e){ alert(e.message); }
  finally{ btn.disabled = false; btn.textContent = label; }
  render();
}

function toggleMode(){ return act('POST','/api/auth/mode'); }
function continueToSignIn(){ return act('POST','/api/auth/continue'); }
function doSignOut(){ return act('POST','/api/auth/signout'); }

// ── ЗАДАЧИ ──
function renderTodos(t){
  document.getElementById('todos-title').textContent = t.title;
  document.getElementById('user-email').textContent = t.email || '';
  document.getElementById('btn-logout').textContent = t.sign_out_label;
  const loading = t.screen === 'loading';
  document.getElementById('todos-loading').classList.toggle('hidden', !loading);
  document.getElementById('todos-panel').classList.toggle('hidden', loading);
  document.getElementById('loading-text').textContent = t.loading_text;

  const inp = document.getElementById('t-title');
  inp.placeholder = t.placeholder; inp.value = t.new_todo;
  document.getElementById('btn-add').textContent = '+ ' + t.add_label;

  const empty = document.getElementById('empty');
  empty.textContent = t.empty_text;
  empty.classList.toggle('hidden', t.screen !== 'empty');

  const list = document.getElementById('task-list');
  list.innerHTML = '';
  t.items.forEach(item => list.appendChild(createCard(item)));
}

function createCard(item){
  const card = document.createElement('div');
  card.className = 'task-card' + (item.struck ? ' done' : '');
  card.innerHTML = `
    <button class="toggle" title="${item.completed ? 'Mark as open' : 'Mark as done'}">${item.icon === 'check-circle' ? '✓' : ''}</button>
    <span class="task-title">${esc(item.title)}</span>
    <button class="btn-del" title="Delete">✕</button>`;
  card.querySelector('.toggle').onclick = () => toggleTask(item.id);
  card.querySelector('.btn-del').onclick = () => deleteTask(item.id);
  return card;
}

async function addTask(ev){
  ev.preventDefault();
  await act('POST','/api/todos',{title: document.getElementById('t-title').value});
}

function toggleTask(id){ return act('POST','/api/todos/'+encodeURIComponent(id)+'/toggle'); }
function deleteTask(id){ return act('DELETE','/api/todos/'+encodeURIComponent(id)); }

// ── УТИЛИТЫ ──
// Ошибка показывается, затем экран перечитывается: после 401/409 он уже другой
async function act(method, url, body){
  try{ state = await api(method, url, body); }
  catch(e){
    alert(e.message);
    try{ state = await api('GET','/api/state'); }
    catch(_){ return; }
  }
  render();
}

async function api(method, url, body){
  const opts = { method, headers:{'Content-Type':'application/json'} };
  if(body) opts.body = JSON.stringify(body);
  const res = await fetch(url, opts);
  const data = await res.json();
  if(!res.ok) throw new Error(typeof data.detail === 'string' ? data.detail : 'Request failed');
  return data;
}

function esc(s){ return String(s).replace(/&/g,'&amp;').replace(/</g,'&lt;').replace(/>/g,'&gt;').replace(/"/g,'&quot;'); }
</script>
</body>
</html>"""

app = create_app()
