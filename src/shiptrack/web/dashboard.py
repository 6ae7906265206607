from flask import jsonify, render_template_string

from ..status import ShipmentStatus
from .auth import require_auth

RECENT_LIMIT = 20


def register_dashboard_routes(app):
    """Register dashboard routes to the Flask app."""

    @app.route('/admin/dashboard')
    @require_auth
    def dashboard():
        """Main dashboard page."""
        summary_stats = app.service.summary()
        recent = []
        for shipment in app.service.list_shipments()[:RECENT_LIMIT]:
            event = shipment.latest_event
            recent.append({**shipment.to_dict(), "lastEvent": event.to_dict() if event else None})
        labels = {status.value: status.label for status in ShipmentStatus}

        return render_template_string(
            DASHBOARD_HTML,
            summary_stats=summary_stats,
            shipments=recent,
            labels=labels,
        )

    @app.route('/admin/api/dashboard/summary')
    @require_auth
    def dashboard_summary():
        """API endpoint for dashboard summary."""
        return jsonify({"success": True, "data": app.service.summary()}), 200


DASHBOARD_HTML = '''
<!DOCTYPE html>
<html>
<head>
    <title>Shiptrack Dashboard</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        * {
            margin: 0;
            padding: 0;
            box-sizing: border-box;
        }

        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, Cantarell, sans-serif;
            background: #f5f5f5;
            color: #333;
        }

        header {
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            color: white;
            padding: 20px;
            text-align: center;
        }

        .container {
            max-width: 1400px;
            margin: 20px auto;
            padding: 0 20px;
        }

        .summary-grid {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(160px, 1fr));
            gap: 15px;
            margin-bottom: 30px;
        }

        .summary-card {
            background: white;
            padding: 20px;
            border-radius: 8px;
            box-shadow: 0 1px 3px rgba(0, 0, 0, 0.1);
            text-align: center;
        }

        .summary-card h3 {
            color: #999;
            font-size: 12px;
            text-transform: uppercase;
            margin-bottom: 10px;
        }

        .summary-card .value {
            font-size: 36px;
            font-weight: bold;
            color: #667eea;
        }

        .shipments-section {
            background: white;
            border-radius: 8px;
            box-shadow: 0 1px 3px rgba(0, 0, 0, 0.1);
            padding: 20px;
        }

        table {
            width: 100%;
            border-collapse: collapse;
        }

        th, td {
            padding: 12px;
            text-align: left;
            border-bottom: 1px solid #eee;
        }

        th {
            background: #f9f9f9;
            color: #666;
            font-size: 12px;
            text-transform: uppercase;
        }

        .empty-state {
            text-align: center;
            padding: 40px;
            color: #999;
        }
    </style>
</head>
<body>
    <header>
        <h1>Shipment Dashboard</h1>
        <p>{{ summary_stats.total }} shipments, {{ summary_stats.active }} active</p>
    </header>

    <div class="container">
        <div class="summary-grid">
            {% for status, count in summary_stats.byStatus.items() %}
            <div class="summary-card">
                <h3>{{ labels[status] }}</h3>
                <div class="value">{{ count }}</div>
            </div>
            {% endfor %}
        </div>

        {% if shipments %}
        <div class="shipments-section">
            <h2>Recent shipments</h2>
            <table>
                <thead>
                    <tr>
                        <th>Tracking ID</th>
                        <th>Status</th>
                        <th>Receiver</th>
                        <th>Destination</th>
                        <th>Last Event</th>
                        <th>Last Updated</th>
                    </tr>
                </thead>
                <tbody>
                    {% for shipment in shipments %}
                    <tr>
                        <td>{{ shipment.trackingID }}</td>
                        <td>{{ labels.get(shipment.status, shipment.status) }}</td>
                        <td>{{ shipment.receiver.name }}</td>
                        <td>{{ shipment.destination.city }}</td>
                        <td>{% if shipment.lastEvent %}{{ shipment.lastEvent.location }}: {{ shipment.lastEvent.notes }}{% endif %}</td>
                        <td>{{ shipment.lastUpdated }}</td>
                    </tr>
                    {% endfor %}
                </tbody>
            </table>
        </div>
        {% else %}
        <div class="empty-state">
            <p>No shipments yet</p>
        </div>
        {% endif %}
    </div>

    <script>
        // Auto-refresh dashboard every 30 seconds
        setTimeout(function() {
            location.reload();
        }, 30000);
    </script>
</body>
</html>
'''
