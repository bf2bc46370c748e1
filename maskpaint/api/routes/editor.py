from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from maskpaint.config import settings


router = APIRouter(tags=["editor"])


_EDITOR_HTML = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>__TITLE__</title>
  <style>
    :root { --bg: #f6f8fc; --card: #ffffff; --text: #1f2937; --muted: #6b7280; --line: #d1d5db; --btn: #0f766e; --err: #b91c1c; }
    body { margin: 0; font-family: "Segoe UI", sans-serif; color: var(--text); background: var(--bg); }
    .wrap { max-width: 920px; margin: 32px auto; padding: 0 16px; }
    .card { background: var(--card); border: 1px solid var(--line); border-radius: 16px; padding: 20px; margin-bottom: 16px; }
    .tools { display: flex; gap: 8px; align-items: center; flex-wrap: wrap; margin-bottom: 12px; }
    button { border: 0; border-radius: 10px; background: var(--btn); color: #fff; padding: 8px 12px; font-weight: 700; cursor: pointer; }
    button:disabled { opacity: .5; cursor: not-allowed; }
    button.active { outline: 3px solid #99f6e4; }
    #stage { position: relative; display: inline-block; background: #4b5563; padding: 16px; border-radius: 12px; }
    #stage img, #stage canvas { display: block; }
    #strokes { position: absolute; top: 16px; left: 16px; touch-action: none; cursor: crosshair; }
    textarea { width: 100%; box-sizing: border-box; border: 1px solid var(--line); border-radius: 10px; padding: 10px; min-height: 72px; }
    .state { margin-top: 12px; color: var(--muted); white-space: pre-wrap; }
    .error { color: var(--err); font-weight: 700; }
    #results img { max-width: 100%; border-radius: 10px; margin-top: 12px; }
  </style>
</head>
<body>
  <div class="wrap" id="container">
    <div class="card">
      <h1>__TITLE__</h1>
      <input id="file" type="file" accept="image/*" />
    </div>
    <div class="card">
      <div class="tools">
        <button id="brush" class="active" type="button">Brush</button>
        <button id="eraser" type="button">Eraser</button>
        <label>Size <input id="size" type="range" min="__BRUSH_MIN__" max="__BRUSH_MAX__" value="__BRUSH_DEFAULT__" /></label>
        <span id="sizeLabel">__BRUSH_DEFAULT__px</span>
        <button id="clear" type="button">Clear</button>
        <button id="save" type="button" disabled>Save mask</button>
      </div>
      <div id="stage"><img id="source" alt="" /><canvas id="strokes"></canvas></div>
    </div>
    <div class="card">
      <textarea id="prompt" maxlength="500" placeholder="Describe what you want to inpaint in the masked area..."></textarea>
      <button id="generate" type="button" disabled>Generate</button>
      <div id="state" class="state">Upload an image to start.</div>
      <div id="results"></div>
    </div>
  </div>
  <script>
    const api = "/api/v1";
    const $ = (id) => document.getElementById(id);
    const canvas = $("strokes");
    const ctx = canvas.getContext("2d");
    let session = null;
    let tool = "paint";
    let points = [];
    let hasContent = false;

    function setState(text, isError = false) {
      $("state").textContent = text;
      $("state").classList.toggle("error", isError);
    }

    function containerWidth() {
      return $("container").clientWidth || 800;
    }

    async function call(path, options = {}) {
      const res = await fetch(api + path, options);
      const data = res.status === 204 ? null : await res.json();
      if (!res.ok) throw new Error((data && data.detail) || `HTTP ${res.status}`);
      return data;
    }

    function applyState(data) {
      const g = data.geometry;
      if (canvas.width !== g.display_width || canvas.height !== g.display_height) {
        canvas.width = g.display_width;
        canvas.height = g.display_height;
        $("source").style.width = g.display_width + "px";
        $("source").style.height = g.display_height + "px";
      }
      hasContent = data.has_content;
      $("save").disabled = !data.has_current_mask;
      $("generate").disabled = !hasContent || !$("prompt").value.trim();
    }

    function drawSegment(from, to) {
      ctx.save();
      ctx.globalCompositeOperation = tool === "erase" ? "destination-out" : "source-over";
      ctx.strokeStyle = "rgba(__STROKE_RGB__, __STROKE_OPACITY__)";
      ctx.lineWidth = Number($("size").value);
      ctx.lineCap = "round";
      ctx.lineJoin = "round";
      ctx.beginPath();
      ctx.moveTo(from[0], from[1]);
      ctx.lineTo(to[0], to[1]);
      ctx.stroke();
      ctx.restore();
    }

    function pointFor(event) {
      const rect = canvas.getBoundingClientRect();
      return [event.clientX - rect.left, event.clientY - rect.top];
    }

    canvas.addEventListener("pointerdown", (event) => {
      if (!session) return;
      canvas.setPointerCapture(event.pointerId);
      points = [pointFor(event)];
      drawSegment(points[0], points[0]);
    });
    canvas.addEventListener("pointermove", (event) => {
      if (!points.length) return;
      const p = pointFor(event);
      drawSegment(points[points.length - 1], p);
      points.push(p);
    });
    canvas.addEventListener("pointerup", async () => {
      if (!points.length) return;
      const stroke = { points, brush_width: Number($("size").value), mode: tool };
      points = [];
      try {
        applyState(await call(`/sessions/${session.session_id}/strokes`, {
          method: "POST",
          headers: { "Content-Type": "application/json" },
          body: JSON.stringify(stroke),
        }));
      } catch (err) {
        setState(err.message, true);
      }
    });

    $("file").addEventListener("change", async (event) => {
      const file = event.target.files[0];
      if (!file) return;
      const form = new FormData();
      form.append("file", file);
      form.append("container_width", String(containerWidth()));
      try {
        const path = session ? `/sessions/${session.session_id}/image` : "/sessions";
        session = await call(path, { method: "POST", body: form });
        $("source").src = session.image_url;
        ctx.clearRect(0, 0, canvas.width, canvas.height);
        applyState(session);
        setState("Paint over the area to edit.");
      } catch (err) {
        setState(err.message, true);
      }
    });

    $("brush").addEventListener("click", () => { tool = "paint"; $("brush").classList.add("active"); $("eraser").classList.remove("active"); });
    $("eraser").addEventListener("click", () => { tool = "erase"; $("eraser").classList.add("active"); $("brush").classList.remove("active"); });
    $("size").addEventListener("input", () => { $("sizeLabel").textContent = $("size").value + "px"; });
    $("prompt").addEventListener("input", () => { $("generate").disabled = !hasContent || !$("prompt").value.trim(); });

    $("clear").addEventListener("click", async () => {
      if (!session) return;
      ctx.clearRect(0, 0, canvas.width, canvas.height);
      applyState(await call(`/sessions/${session.session_id}/clear`, { method: "POST" }));
    });

    $("save").addEventListener("click", async () => {
      try {
        applyState(await call(`/sessions/${session.session_id}/mask/save`, { method: "POST" }));
        setState("Mask saved.");
      } catch (err) {
        setState(err.message, true);
      }
    });

    window.addEventListener("resize", async () => {
      if (!session) return;
      const data = await call(`/sessions/${session.session_id}/viewport`, {
        method: "PUT",
        headers: { "Content-Type": "application/json" },
        body: JSON.stringify({ container_width: containerWidth() }),
      });
      if (data.invalidated) {
        ctx.clearRect(0, 0, canvas.width, canvas.height);
        setState("Viewport changed; the mask was cleared.");
      }
      applyState(data);
    });

    async function poll(taskId) {
      for (;;) {
        const data = await call(`/generations/${taskId}`);
        if (data.status === "succeeded") {
          const img = document.createElement("img");
          img.src = data.result.image_url;
          $("results").prepend(img);
          setState("Done.");
          return;
        }
        if (data.status === "failed" || data.status === "canceled") {
          setState(data.error_message || data.status, true);
          return;
        }
        await new Promise((r) => setTimeout(r, 2000));
      }
    }

    $("generate").addEventListener("click", async () => {
      $("generate").disabled = true;
      setState("Generating...");
      try {
        const job = await call(`/sessions/${session.session_id}/generate`, {
          method: "POST",
          headers: { "Content-Type": "application/json" },
          body: JSON.stringify({ prompt: $("prompt").value.trim() }),
        });
        await poll(job.task_id);
      } catch (err) {
        setState(err.message, true);
      } finally {
        $("generate").disabled = !hasContent;
      }
    });
  </script>
</body>
</html>
"""


def render_editor_html() -> str:
    red, green, blue = settings.stroke_color
    replacements = {
        "__TITLE__": settings.app_name,
        "__BRUSH_MIN__": str(settings.brush_size_min),
        "__BRUSH_MAX__": str(settings.brush_size_max),
        "__BRUSH_DEFAULT__": str(settings.brush_size_default),
        "__STROKE_RGB__": f"{red}, {green}, {blue}",
        "__STROKE_OPACITY__": str(settings.stroke_opacity),
    }
    html = _EDITOR_HTML
    for placeholder, value in replacements.items():
        html = html.replace(placeholder, value)
    return html


@router.get("/editor", response_class=HTMLResponse, include_in_schema=False)
def editor() -> HTMLResponse:
    return HTMLResponse(render_editor_html())
